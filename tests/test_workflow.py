"""
Workflow engine tests

Walks enquiries through every stage over an in-memory store and checks
preconditions, side effects and rollback of failed transitions.
"""

from decimal import Decimal

import pytest

from cobbler.models.api import BillingLineInput
from cobbler.models.domain import (
    DeliveryMethod,
    DeliveryStatus,
    EnquiryStatus,
    PhotoStage,
    PhotoType,
    PickupStatus,
    ServiceKind,
    ServiceStatus,
    WorkflowStage,
)
from cobbler.utils.errors import DuplicateRecordError, InvalidStateError, NotFoundError, ValidationError

from conftest import PHOTO


def stage_of(store, enquiry_id):
    with store.transaction() as session:
        return session.get_enquiry(enquiry_id).current_stage


def billing_lines():
    return [
        BillingLineInput(service_type="Sole Replacement", original_amount=Decimal("1000"),
                         discount_percent=Decimal("10"), gst_rate=Decimal("18")),
    ]


class TestPickup:
    """Pickup stage transitions"""

    def test_schedule_requires_conversion(self, new_enquiry, engine):
        enquiry = new_enquiry()
        with pytest.raises(InvalidStateError):
            engine.schedule_pickup(enquiry.id)

    def test_schedule_moves_to_pickup(self, new_enquiry, enquiries, engine, store):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("500"))

        pickup = engine.schedule_pickup(enquiry.id, pin="4821")

        assert pickup.status == PickupStatus.SCHEDULED
        assert pickup.pin == "4821"
        assert stage_of(store, enquiry.id) == WorkflowStage.PICKUP

    def test_reassign_twice_last_wins(self, new_enquiry, enquiries, engine):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("500"))
        engine.schedule_pickup(enquiry.id)

        engine.assign_pickup(enquiry.id, "Ravi")
        pickup = engine.assign_pickup(enquiry.id, "Meena")

        assert pickup.status == PickupStatus.ASSIGNED
        assert pickup.assigned_to == "Meena"

    def test_collect_without_photo_changes_nothing(self, new_enquiry, enquiries, engine, store):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("500"))
        engine.schedule_pickup(enquiry.id)
        engine.assign_pickup(enquiry.id, "Ravi")

        for photo in (None, "", "   "):
            with pytest.raises(ValidationError):
                engine.mark_collected(enquiry.id, photo)

        with store.transaction() as session:
            assert session.get_pickup(enquiry.id).status == PickupStatus.ASSIGNED
            assert session.list_photos(enquiry.id) == []

    def test_collect_records_proof_photo(self, new_enquiry, enquiries, engine, store):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("500"))
        engine.schedule_pickup(enquiry.id)
        engine.assign_pickup(enquiry.id, "Ravi")

        pickup = engine.mark_collected(enquiry.id, PHOTO)

        assert pickup.status == PickupStatus.COLLECTED
        assert pickup.collected_at is not None
        with store.transaction() as session:
            photo = session.get_photo(pickup.collection_photo_id)
        assert photo.stage == PhotoStage.PICKUP
        assert photo.photo_type == PhotoType.AFTER_PHOTO
        assert photo.notes == "Collection proof photo"

    def test_receive_from_scheduled_rejected(self, new_enquiry, enquiries, engine, store):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("500"))
        engine.schedule_pickup(enquiry.id)

        with pytest.raises(InvalidStateError):
            engine.mark_received(enquiry.id, PHOTO)

        with store.transaction() as session:
            assert session.get_pickup(enquiry.id).status == PickupStatus.SCHEDULED
            assert session.list_photos(enquiry.id) == []
        assert stage_of(store, enquiry.id) == WorkflowStage.PICKUP

    def test_receive_moves_to_service(self, new_enquiry, enquiries, engine, store):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("750"))
        engine.schedule_pickup(enquiry.id)
        engine.assign_pickup(enquiry.id, "Ravi")
        engine.mark_collected(enquiry.id, PHOTO)

        service = engine.mark_received(enquiry.id, PHOTO, notes="Scuffed toe")

        assert service.estimated_cost == Decimal("750")
        assert service.received_photo_id is not None
        assert stage_of(store, enquiry.id) == WorkflowStage.SERVICE
        with store.transaction() as session:
            pickup = session.get_pickup(enquiry.id)
        assert pickup.status == PickupStatus.RECEIVED
        assert pickup.received_photo_id == service.received_photo_id

    def test_estimated_cost_input_wins(self, new_enquiry, enquiries, engine):
        enquiry = new_enquiry()
        enquiries.convert_enquiry(enquiry.id, Decimal("750"))
        engine.schedule_pickup(enquiry.id)
        engine.assign_pickup(enquiry.id, "Ravi")
        engine.mark_collected(enquiry.id, PHOTO)

        service = engine.mark_received(enquiry.id, PHOTO, estimated_cost=Decimal("900"))

        assert service.estimated_cost == Decimal("900")

    def test_unknown_enquiry(self, engine):
        with pytest.raises(NotFoundError):
            engine.assign_pickup(999, "Ravi")


class TestService:
    """Service stage transitions"""

    def test_assign_requires_service_types(self, in_service, engine):
        with pytest.raises(ValidationError):
            engine.assign_services(in_service.id, [])

    def test_service_type_lifecycle(self, in_service, engine, store):
        [service_type] = engine.assign_services(
            in_service.id, [ServiceKind.STITCHING], department="Leather", assigned_to="Kiran"
        )
        assert service_type.status == ServiceStatus.PENDING
        assert service_type.department == "Leather"

        started = engine.start_service(in_service.id, service_type.id, PHOTO)
        assert started.status == ServiceStatus.IN_PROGRESS
        assert started.started_at is not None

        done = engine.complete_service(in_service.id, service_type.id, PHOTO, notes="Double stitched")
        assert done.status == ServiceStatus.DONE
        assert done.work_notes == "Double stitched"

        with store.transaction() as session:
            photos = [p for p in session.list_photos(in_service.id) if p.service_type_id == service_type.id]
        assert [p.photo_type for p in photos] == [PhotoType.BEFORE_PHOTO, PhotoType.AFTER_PHOTO]

    def test_complete_before_start_rejected(self, in_service, engine):
        [service_type] = engine.assign_services(in_service.id, [ServiceKind.ZIPPER_REPAIR])
        with pytest.raises(InvalidStateError):
            engine.complete_service(in_service.id, service_type.id, PHOTO)

    def test_service_type_of_other_enquiry(self, in_service, new_enquiry, engine):
        [service_type] = engine.assign_services(in_service.id, [ServiceKind.ZIPPER_REPAIR])
        other = new_enquiry()
        with pytest.raises(NotFoundError):
            engine.start_service(other.id, service_type.id, PHOTO)

    def test_final_photo_requires_all_done(self, in_service, engine):
        first, second = engine.assign_services(
            in_service.id, [ServiceKind.STITCHING, ServiceKind.CLEANING_POLISH]
        )
        engine.start_service(in_service.id, first.id, PHOTO)
        engine.complete_service(in_service.id, first.id, PHOTO)

        with pytest.raises(InvalidStateError):
            engine.save_final_photo(in_service.id, PHOTO)

    def test_complete_workflow_rejected_while_work_pending(self, in_service, engine, store):
        engine.assign_services(in_service.id, [ServiceKind.HARDWARE_REPAIR])

        with pytest.raises(InvalidStateError):
            engine.complete_workflow(in_service.id, Decimal("1000"))
        assert stage_of(store, in_service.id) == WorkflowStage.SERVICE

    def test_complete_workflow_requires_final_photo(self, in_service, engine):
        [service_type] = engine.assign_services(in_service.id, [ServiceKind.HARDWARE_REPAIR])
        engine.start_service(in_service.id, service_type.id, PHOTO)
        engine.complete_service(in_service.id, service_type.id, PHOTO)

        with pytest.raises(InvalidStateError):
            engine.complete_workflow(in_service.id, Decimal("1000"))

    def test_complete_workflow_moves_to_billing(self, in_service, engine, store):
        [service_type] = engine.assign_services(in_service.id, [ServiceKind.SOLE_REPLACEMENT])
        engine.start_service(in_service.id, service_type.id, PHOTO)
        engine.complete_service(in_service.id, service_type.id, PHOTO)
        final = engine.save_final_photo(in_service.id, PHOTO, notes="Good as new")
        assert final.overall_after_photo_id is not None

        service = engine.complete_workflow(in_service.id, Decimal("1100"), "Resoled")

        assert service.actual_cost == Decimal("1100")
        assert service.completed_at is not None
        assert stage_of(store, in_service.id) == WorkflowStage.BILLING


class TestBillingAndDelivery:
    """Billing, delivery and completion"""

    def test_create_billing(self, in_billing, engine, store):
        billing = engine.create_billing(in_billing.id, billing_lines(), gst_included=True)

        assert billing.total_amount == Decimal("1062.00")
        assert billing.subtotal == Decimal("900.00")
        assert billing.gst_amount == Decimal("162.00")
        assert billing.final_amount == Decimal("1000.00")
        assert billing.customer_name == in_billing.customer_name
        assert len(billing.items) == 1
        assert billing.items[0].discount_amount == Decimal("100.00")
        with store.transaction() as session:
            assert session.get_enquiry(in_billing.id).final_amount == Decimal("1062.00")

    def test_second_billing_rejected(self, in_billing, engine):
        engine.create_billing(in_billing.id, billing_lines(), gst_included=True)
        with pytest.raises(InvalidStateError):
            engine.create_billing(in_billing.id, billing_lines(), gst_included=True)

    def test_invoice_number_collision_retried(self, in_billing, new_enquiry, engine, monkeypatch):
        numbers = iter(["INV-20240101-001", "INV-20240101-001", "INV-20240101-002"])
        monkeypatch.setattr("cobbler.services.workflow.generate_invoice_number", lambda today: next(numbers))

        first = engine.create_billing(in_billing.id, billing_lines(), gst_included=True)
        assert first.invoice_number == "INV-20240101-001"

        # Force a second enquiry into billing to compete for the number
        other = new_enquiry()
        with engine.store.transaction() as session:
            session.update_enquiry(other.id, {"current_stage": WorkflowStage.BILLING})
        second = engine.create_billing(other.id, billing_lines(), gst_included=True)

        assert second.invoice_number == "INV-20240101-002"

    def test_invoice_number_attempts_exhausted(self, in_billing, new_enquiry, engine, monkeypatch):
        monkeypatch.setattr("cobbler.services.workflow.generate_invoice_number", lambda today: "INV-20240101-001")
        engine.create_billing(in_billing.id, billing_lines(), gst_included=True)

        other = new_enquiry()
        with engine.store.transaction() as session:
            session.update_enquiry(other.id, {"current_stage": WorkflowStage.BILLING})
        with pytest.raises(DuplicateRecordError):
            engine.create_billing(other.id, billing_lines(), gst_included=True)
        with engine.store.transaction() as session:
            assert session.get_billing(other.id) is None

    def test_move_to_delivery_requires_billing(self, in_billing, engine):
        with pytest.raises(NotFoundError):
            engine.move_to_delivery(in_billing.id)

    def test_delivery_to_completion(self, in_billing, engine, store):
        engine.create_billing(in_billing.id, billing_lines(), gst_included=True)

        delivery = engine.move_to_delivery(in_billing.id)
        assert delivery.status == DeliveryStatus.READY
        assert delivery.delivery_method == DeliveryMethod.CUSTOMER_PICKUP
        assert delivery.delivery_address == in_billing.address

        delivery = engine.schedule_delivery(in_billing.id, DeliveryMethod.HOME_DELIVERY)
        assert delivery.status == DeliveryStatus.SCHEDULED

        delivery = engine.mark_out_for_delivery(in_billing.id, "Suresh")
        assert delivery.status == DeliveryStatus.OUT_FOR_DELIVERY

        with pytest.raises(ValidationError):
            engine.mark_delivered(in_billing.id, None)
        with store.transaction() as session:
            assert session.get_delivery(in_billing.id).status == DeliveryStatus.OUT_FOR_DELIVERY

        delivery = engine.mark_delivered(in_billing.id, PHOTO, customer_signature="A. Rao")
        assert delivery.status == DeliveryStatus.DELIVERED
        assert delivery.delivered_at is not None
        assert stage_of(store, in_billing.id) == WorkflowStage.COMPLETED

    def test_dispatch_before_schedule_rejected(self, in_billing, engine):
        engine.create_billing(in_billing.id, billing_lines(), gst_included=True)
        engine.move_to_delivery(in_billing.id)
        with pytest.raises(InvalidStateError):
            engine.mark_out_for_delivery(in_billing.id, "Suresh")


class TestStageOrdering:
    """Stages only move forward"""

    def test_earlier_stage_operations_fail_after_advance(self, in_billing, engine):
        with pytest.raises(NotFoundError):
            engine.assign_pickup(in_billing.id, "Ravi")
        with pytest.raises(NotFoundError):
            engine.assign_services(in_billing.id, [ServiceKind.STITCHING])
        with pytest.raises(NotFoundError):
            engine.schedule_pickup(in_billing.id)

    def test_crm_operations_locked_after_enquiry_stage(self, in_billing, enquiries, store):
        with pytest.raises(NotFoundError):
            enquiries.mark_contacted(in_billing.id)
        with pytest.raises(NotFoundError):
            enquiries.convert_enquiry(in_billing.id, Decimal("1"))

        with store.transaction() as session:
            enquiry = session.get_enquiry(in_billing.id)
        assert enquiry.status == EnquiryStatus.CONVERTED
        assert enquiry.quoted_amount == Decimal("1200")
        assert enquiry.current_stage == WorkflowStage.BILLING

    def test_converted_status_kept(self, in_billing, store):
        with store.transaction() as session:
            assert session.get_enquiry(in_billing.id).status == EnquiryStatus.CONVERTED
