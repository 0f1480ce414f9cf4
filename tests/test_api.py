"""
HTTP API tests

Authentication, the response envelope, validation errors and a full
enquiry-to-delivery walk through the REST surface.
"""

from fastapi.testclient import TestClient

from cobbler.main import app
from cobbler.utils.config import settings
from conftest import PHOTO

ENQUIRY = {
    "customerName": "Neha Joshi",
    "phone": "9123456780",
    "address": "4 Park Street, Kolkata",
    "message": "Strap of leather bag torn",
    "inquiryType": "Instagram",
    "product": "Bag",
}


class TestAuthentication:
    """Shared-secret header check"""

    def test_missing_token(self, client):
        response = client.get("/api/enquiries", headers={"X-Token": ""})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Access token required",
            "message": "Access token required",
        }

    def test_wrong_token(self, client):
        response = client.get("/api/enquiries", headers={"X-Token": "nope"})
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_bearer_token(self, client):
        token = settings.AUTH_TOKEN
        anonymous = TestClient(app)
        response = anonymous.get("/api/enquiries", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

    def test_health_is_public(self, client):
        for path in ("/health", "/api/health"):
            response = TestClient(app).get(path)
            assert response.status_code == 200
            assert response.json()["data"]["status"] == "healthy"


class TestEnquiryEndpoints:
    """Envelope and camelCase payloads"""

    def test_create_and_list(self, client):
        created = client.post("/api/enquiries", json=ENQUIRY)
        assert created.status_code == 201
        body = created.json()
        assert body["success"] is True
        assert body["data"]["customerName"] == "Neha Joshi"
        assert body["data"]["currentStage"] == "enquiry"

        listing = client.get("/api/enquiries", params={"page": 1, "limit": 10}).json()
        assert listing["total"] == 1
        assert listing["page"] == 1
        assert listing["limit"] == 10
        assert listing["totalPages"] == 1

    def test_validation_error_is_400(self, client):
        response = client.post("/api/enquiries", json={**ENQUIRY, "product": "Hat"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"

    def test_invalid_id_is_400(self, client):
        assert client.get("/api/enquiries/abc").status_code == 400

    def test_missing_enquiry_is_404(self, client):
        response = client.get("/api/enquiries/9999")
        assert response.status_code == 404
        assert response.json()["error"] == "Not found"

    def test_invalid_stage_value(self, client):
        enquiry_id = client.post("/api/enquiries", json=ENQUIRY).json()["data"]["id"]
        response = client.patch(f"/api/enquiries/{enquiry_id}/stage", json={"stage": "shipping"})
        assert response.status_code == 400

    def test_stats(self, client):
        client.post("/api/enquiries", json=ENQUIRY)
        stats = client.get("/api/enquiries/stats").json()["data"]
        assert set(stats) == {"totalCurrentMonth", "newThisWeek", "converted", "pendingFollowUp"}


class TestBillingEndpoints:
    """Calculator preview"""

    def test_calculate(self, client):
        response = client.post("/api/billing/calculate", json={
            "gstIncluded": True,
            "items": [
                {"serviceType": "Sole Replacement", "originalAmount": 500, "discountPercent": 0, "gstRate": 18},
                {"serviceType": "Stitching", "originalAmount": 300, "discountPercent": 50, "gstRate": 0},
            ],
        })
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["subtotal"] == 650.0
        assert data["totalGst"] == 90.0
        assert data["totalAmount"] == 740.0

    def test_calculate_reports_invalid_lines(self, client):
        response = client.post("/api/billing/calculate", json={
            "gstIncluded": True,
            "items": [{"serviceType": "Stitching", "originalAmount": -10, "gstRate": 18}],
        })
        assert response.status_code == 400
        body = response.json()
        assert body["invalidLines"][0]["index"] == 0

    def test_calculate_huge_amount_is_400(self, client):
        response = client.post("/api/billing/calculate", json={
            "gstIncluded": False,
            "items": [{"serviceType": "Stitching", "originalAmount": 1e27}],
        })
        assert response.status_code == 400
        assert response.json()["invalidLines"][0]["reasons"] == ["originalAmount must be <= 99999999.99"]


class TestFullWorkflow:
    """Enquiry to completed over HTTP"""

    def test_walkthrough(self, client):
        enquiry_id = client.post("/api/enquiries", json=ENQUIRY).json()["data"]["id"]

        assert client.patch(f"/api/enquiries/{enquiry_id}/convert", json={"quotedAmount": 1000}).status_code == 200
        moved = client.patch(f"/api/enquiries/{enquiry_id}/stage", json={"stage": "pickup"}).json()
        assert moved["data"]["currentStage"] == "pickup"

        assert client.patch(f"/api/pickup/enquiries/{enquiry_id}/assign", json={"assignedTo": "Ravi"}).status_code == 200
        missing_photo = client.patch(f"/api/pickup/enquiries/{enquiry_id}/collect", json={})
        assert missing_photo.status_code == 400
        assert client.patch(
            f"/api/pickup/enquiries/{enquiry_id}/collect", json={"collectionPhoto": PHOTO}
        ).status_code == 200
        received = client.patch(f"/api/pickup/enquiries/{enquiry_id}/receive", json={"receivedPhoto": PHOTO})
        assert received.json()["data"]["estimatedCost"] == 1000.0

        [service_type] = client.post(
            f"/api/service/enquiries/{enquiry_id}/assign", json={"serviceTypes": ["Leather Treatment"]}
        ).json()["data"]
        client.post(f"/api/service/enquiries/{enquiry_id}/start",
                    json={"serviceTypeId": service_type["id"], "beforePhoto": PHOTO})
        client.post(f"/api/service/enquiries/{enquiry_id}/complete",
                    json={"serviceTypeId": service_type["id"], "afterPhoto": PHOTO})

        board = client.get(f"/api/service/enquiries/{enquiry_id}").json()["data"]
        assert board["serviceTypes"][0]["status"] == "done"
        assert board["serviceTypes"][0]["beforePhoto"]["photoData"] == PHOTO
        assert board["overallBeforePhoto"]["stage"] == "pickup"

        assert client.post(f"/api/service/enquiries/{enquiry_id}/final-photo",
                           json={"afterPhoto": PHOTO}).status_code == 200
        assert client.post(f"/api/service/enquiries/{enquiry_id}/complete-workflow",
                           json={"actualCost": 1000}).status_code == 200

        billing = client.post(f"/api/billing/enquiries/{enquiry_id}/billing", json={
            "gstIncluded": True,
            "items": [{"serviceType": "Leather Treatment", "originalAmount": 1000,
                       "discountPercent": 10, "gstRate": 18}],
        })
        assert billing.status_code == 201
        invoice = client.get(f"/api/billing/enquiries/{enquiry_id}/invoice").json()["data"]
        assert invoice["totalAmount"] == 1062.0
        assert invoice["items"][0]["gstAmount"] == 162.0

        assert client.patch(f"/api/billing/enquiries/{enquiry_id}/move-to-delivery").status_code == 200
        assert client.patch(f"/api/delivery/enquiries/{enquiry_id}/schedule",
                            json={"deliveryMethod": "home-delivery"}).status_code == 200
        assert client.patch(f"/api/delivery/enquiries/{enquiry_id}/dispatch",
                            json={"assignedTo": "Suresh"}).status_code == 200
        assert client.patch(f"/api/delivery/enquiries/{enquiry_id}/deliver",
                            json={"deliveryPhoto": PHOTO}).status_code == 200

        completed = client.get("/api/delivery/completed").json()["data"]
        assert [e["id"] for e in completed] == [enquiry_id]
        assert completed[0]["deliveryDetails"]["status"] == "delivered"
        assert client.get("/api/billing/stats").json()["data"]["totalBilled"] == 1062.0


class TestLifespan:
    """Startup and shutdown"""

    def test_shutdown_forgets_store_and_services(self):
        from cobbler import store as store_module
        from cobbler.services import enquiries, stage_queries, workflow

        engine = workflow.get_workflow_engine()
        enquiries.get_enquiry_service()
        stage_queries.get_stage_query_service()

        with TestClient(app):
            pass

        assert workflow._workflow_engine is None
        assert enquiries._enquiry_service is None
        assert stage_queries._stage_query_service is None
        assert store_module._store is None
        assert workflow.get_workflow_engine().store is store_module.get_store()
        assert workflow.get_workflow_engine() is not engine
        store_module.reset_store()
        workflow.reset_workflow_engine()
