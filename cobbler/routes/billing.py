"""
Billing stage routes.
"""

from fastapi import APIRouter, Depends

from cobbler.models.api import CalculateRequest, CreateBillingRequest
from cobbler.services.billing import calculate_invoice
from cobbler.services.stage_queries import StageQueryService, get_stage_query_service
from cobbler.services.workflow import WorkflowEngine, get_workflow_engine
from cobbler.utils.auth import require_token
from cobbler.utils.responses import success_response

router = APIRouter(prefix="/api/billing", tags=["billing"], dependencies=[Depends(require_token)])


@router.get("/stats")
def billing_stats(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_billing_stats())


@router.get("/enquiries")
def billing_enquiries(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_billing_enquiries())


@router.get("/enquiries/{enquiry_id}")
def billing_enquiry(enquiry_id: int, queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_billing_enquiry(enquiry_id))


@router.post("/calculate")
def calculate(body: CalculateRequest):
    """Preview invoice totals without storing anything"""
    return success_response(calculate_invoice(body.items, body.gst_included))


@router.post("/enquiries/{enquiry_id}/billing", status_code=201)
def create_billing(
    enquiry_id: int,
    body: CreateBillingRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    billing = engine.create_billing(
        enquiry_id,
        body.items,
        gst_included=body.gst_included,
        gst_rate=body.gst_rate,
        notes=body.notes,
        business_info=body.business_info,
    )
    return success_response(billing, f"Invoice {billing.invoice_number} created")


@router.get("/enquiries/{enquiry_id}/invoice")
def get_invoice(enquiry_id: int, queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_invoice(enquiry_id))


@router.patch("/enquiries/{enquiry_id}/move-to-delivery")
def move_to_delivery(enquiry_id: int, engine: WorkflowEngine = Depends(get_workflow_engine)):
    return success_response(engine.move_to_delivery(enquiry_id), "Moved to delivery")
