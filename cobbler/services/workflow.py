"""
Stage Workflow Engine

Moves an enquiry through enquiry -> pickup -> service -> billing ->
delivery -> completed. Every operation runs in a single store transaction:
the status checks, the photo insert and the row updates either all land
or none do.

Errors:
    NotFoundError      enquiry missing, or not in the stage the operation belongs to
    ValidationError    a required photo or field is missing
    InvalidStateError  the stage record is not in the status the step requires
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from cobbler.models.api import BillingLineInput
from cobbler.models.domain import (
    BillingDetail,
    DeliveryDetail,
    DeliveryMethod,
    DeliveryStatus,
    Enquiry,
    EnquiryStatus,
    PhotoStage,
    PhotoType,
    PickupDetail,
    PickupStatus,
    ServiceDetail,
    ServiceKind,
    ServiceStatus,
    ServiceType,
    WorkflowStage,
)
from cobbler.services.billing import calculate_invoice, generate_invoice_number
from cobbler.store import Session, Store, get_store
from cobbler.utils.config import settings
from cobbler.utils.errors import (
    DuplicateRecordError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ASSIGNABLE_PICKUP_STATUSES = {PickupStatus.SCHEDULED, PickupStatus.ASSIGNED}


def _require_photo(photo: Optional[str], label: str) -> str:
    if photo is None or not photo.strip():
        raise ValidationError(f"{label} is required")
    return photo


class WorkflowEngine:
    """Stage transitions and the writes that accompany them"""

    def __init__(self, store: Optional[Store] = None):
        self.store = store or get_store()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _enquiry_in_stage(session: Session, enquiry_id: int, stage: WorkflowStage) -> Enquiry:
        enquiry = session.get_enquiry(enquiry_id, for_update=True)
        if not enquiry or enquiry.current_stage != stage:
            raise NotFoundError(f"Enquiry {enquiry_id} not found in {stage.value} stage")
        return enquiry

    @staticmethod
    def _pickup(session: Session, enquiry_id: int) -> PickupDetail:
        pickup = session.get_pickup(enquiry_id)
        if not pickup:
            raise NotFoundError(f"Pickup details not found for enquiry {enquiry_id}")
        return pickup

    @staticmethod
    def _delivery(session: Session, enquiry_id: int, expected: DeliveryStatus) -> DeliveryDetail:
        delivery = session.get_delivery(enquiry_id)
        if not delivery:
            raise NotFoundError(f"Delivery details not found for enquiry {enquiry_id}")
        if delivery.status != expected:
            logger.warning(
                f"Delivery for enquiry {enquiry_id} is {delivery.status.value}, expected {expected.value}"
            )
            raise InvalidStateError(
                f"Delivery must be '{expected.value}' (currently '{delivery.status.value}')"
            )
        return delivery

    @staticmethod
    def _service_type(session: Session, enquiry_id: int, service_type_id: int) -> ServiceType:
        service_type = session.get_service_type(service_type_id)
        if not service_type or service_type.enquiry_id != enquiry_id:
            raise NotFoundError(f"Service type {service_type_id} not found for enquiry {enquiry_id}")
        return service_type

    # ------------------------------------------------------------------
    # Pickup
    # ------------------------------------------------------------------

    def schedule_pickup(
        self,
        enquiry_id: int,
        scheduled_time: Optional[datetime] = None,
        pin: Optional[str] = None
    ) -> PickupDetail:
        """Converted enquiry enters the pickup stage"""
        with self.store.transaction() as session:
            enquiry = self._enquiry_in_stage(session, enquiry_id, WorkflowStage.ENQUIRY)
            if enquiry.status != EnquiryStatus.CONVERTED:
                raise InvalidStateError(
                    f"Enquiry {enquiry_id} must be converted before scheduling pickup "
                    f"(status is {enquiry.status.value})"
                )
            session.update_enquiry(enquiry_id, {"current_stage": WorkflowStage.PICKUP})
            pickup = session.insert_pickup(enquiry_id, {
                "status": PickupStatus.SCHEDULED,
                "scheduled_time": scheduled_time,
                "pin": pin,
            })
        logger.info(f"Scheduled pickup for enquiry {enquiry_id}")
        return pickup

    def assign_pickup(self, enquiry_id: int, assigned_to: str) -> PickupDetail:
        """Assign (or re-assign) the pickup; creates the pickup row if it is missing"""
        if not assigned_to or not assigned_to.strip():
            raise ValidationError("assignedTo is required")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.PICKUP)
            pickup = session.get_pickup(enquiry_id)
            fields = {"status": PickupStatus.ASSIGNED, "assigned_to": assigned_to.strip()}
            if pickup is None:
                pickup = session.insert_pickup(enquiry_id, fields)
            elif pickup.status in ASSIGNABLE_PICKUP_STATUSES:
                pickup = session.update_pickup(enquiry_id, fields)
            else:
                raise InvalidStateError(
                    f"Pickup for enquiry {enquiry_id} is already {pickup.status.value}"
                )
        logger.info(f"Pickup for enquiry {enquiry_id} assigned to {pickup.assigned_to}")
        return pickup

    def mark_collected(self, enquiry_id: int, photo: Optional[str], notes: Optional[str] = None) -> PickupDetail:
        """Record collection from the customer with a proof photo"""
        photo = _require_photo(photo, "Collection proof photo")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.PICKUP)
            pickup = self._pickup(session, enquiry_id)
            if pickup.status != PickupStatus.ASSIGNED:
                raise InvalidStateError(
                    f"Pickup must be 'assigned' to mark collected (currently '{pickup.status.value}')"
                )
            saved = session.insert_photo({
                "enquiry_id": enquiry_id,
                "stage": PhotoStage.PICKUP,
                "photo_type": PhotoType.AFTER_PHOTO,
                "photo_data": photo,
                "notes": notes or "Collection proof photo",
            })
            pickup = session.update_pickup(enquiry_id, {
                "status": PickupStatus.COLLECTED,
                "collected_at": datetime.now(),
                "collection_notes": notes,
                "collection_photo_id": saved.id,
            })
        logger.info(f"Pickup for enquiry {enquiry_id} collected (photo {saved.id})")
        return pickup

    def mark_received(
        self,
        enquiry_id: int,
        photo: Optional[str],
        notes: Optional[str] = None,
        estimated_cost: Optional[Decimal] = None
    ) -> ServiceDetail:
        """Item arrives at the workshop; the enquiry enters the service stage"""
        photo = _require_photo(photo, "Received condition photo")

        with self.store.transaction() as session:
            enquiry = self._enquiry_in_stage(session, enquiry_id, WorkflowStage.PICKUP)
            pickup = self._pickup(session, enquiry_id)
            if pickup.status != PickupStatus.COLLECTED:
                raise InvalidStateError(
                    f"Pickup must be 'collected' to mark received (currently '{pickup.status.value}')"
                )
            saved = session.insert_photo({
                "enquiry_id": enquiry_id,
                "stage": PhotoStage.PICKUP,
                "photo_type": PhotoType.BEFORE_PHOTO,
                "photo_data": photo,
                "notes": notes or "Received condition photo",
            })
            session.update_pickup(enquiry_id, {
                "status": PickupStatus.RECEIVED,
                "received_at": datetime.now(),
                "received_notes": notes,
                "received_photo_id": saved.id,
            })
            session.update_enquiry(enquiry_id, {"current_stage": WorkflowStage.SERVICE})

            if estimated_cost is None:
                estimated_cost = enquiry.quoted_amount if enquiry.quoted_amount is not None else Decimal("0")
            service = session.insert_service_detail(enquiry_id, {
                "estimated_cost": estimated_cost,
                "received_photo_id": saved.id,
                "received_notes": notes,
            })
        logger.info(f"Enquiry {enquiry_id} received at workshop, moved to service")
        return service

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    def assign_services(
        self,
        enquiry_id: int,
        service_types: Sequence[ServiceKind],
        department: Optional[str] = None,
        assigned_to: Optional[str] = None
    ) -> List[ServiceType]:
        """Add one pending service type per selected kind"""
        if not service_types:
            raise ValidationError("At least one service type is required")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.SERVICE)
            if not session.get_service_detail(enquiry_id):
                session.insert_service_detail(enquiry_id, {})
            created = [
                session.insert_service_type(enquiry_id, {
                    "service_type": kind,
                    "status": ServiceStatus.PENDING,
                    "department": department,
                    "assigned_to": assigned_to,
                })
                for kind in service_types
            ]
        logger.info(f"Assigned {len(created)} service type(s) to enquiry {enquiry_id}")
        return created

    def start_service(
        self,
        enquiry_id: int,
        service_type_id: int,
        photo: Optional[str],
        notes: Optional[str] = None
    ) -> ServiceType:
        """pending -> in-progress with a before photo"""
        photo = _require_photo(photo, "Before photo")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.SERVICE)
            service_type = self._service_type(session, enquiry_id, service_type_id)
            if service_type.status != ServiceStatus.PENDING:
                raise InvalidStateError(
                    f"Service type {service_type_id} must be 'pending' to start "
                    f"(currently '{service_type.status.value}')"
                )
            session.insert_photo({
                "enquiry_id": enquiry_id,
                "stage": PhotoStage.SERVICE,
                "photo_type": PhotoType.BEFORE_PHOTO,
                "photo_data": photo,
                "notes": notes,
                "service_type_id": service_type_id,
            })
            service_type = session.update_service_type(service_type_id, {
                "status": ServiceStatus.IN_PROGRESS,
                "started_at": datetime.now(),
            })
        logger.info(f"Started service type {service_type_id} for enquiry {enquiry_id}")
        return service_type

    def complete_service(
        self,
        enquiry_id: int,
        service_type_id: int,
        photo: Optional[str],
        notes: Optional[str] = None
    ) -> ServiceType:
        """in-progress -> done with an after photo"""
        photo = _require_photo(photo, "After photo")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.SERVICE)
            service_type = self._service_type(session, enquiry_id, service_type_id)
            if service_type.status != ServiceStatus.IN_PROGRESS:
                raise InvalidStateError(
                    f"Service type {service_type_id} must be 'in-progress' to complete "
                    f"(currently '{service_type.status.value}')"
                )
            session.insert_photo({
                "enquiry_id": enquiry_id,
                "stage": PhotoStage.SERVICE,
                "photo_type": PhotoType.AFTER_PHOTO,
                "photo_data": photo,
                "notes": notes,
                "service_type_id": service_type_id,
            })
            service_type = session.update_service_type(service_type_id, {
                "status": ServiceStatus.DONE,
                "completed_at": datetime.now(),
                "work_notes": notes,
            })
        logger.info(f"Completed service type {service_type_id} for enquiry {enquiry_id}")
        return service_type

    @staticmethod
    def _require_all_done(session: Session, enquiry_id: int) -> List[ServiceType]:
        service_types = session.list_service_types(enquiry_id)
        if not service_types:
            raise InvalidStateError(f"No service types assigned to enquiry {enquiry_id}")
        pending = [st.id for st in service_types if st.status != ServiceStatus.DONE]
        if pending:
            logger.warning(f"Enquiry {enquiry_id} has unfinished service types {pending}")
            raise InvalidStateError(f"All service types must be done first (unfinished: {pending})")
        return service_types

    def save_final_photo(self, enquiry_id: int, photo: Optional[str], notes: Optional[str] = None) -> ServiceDetail:
        """Overall after photo, once every service type is done"""
        photo = _require_photo(photo, "Final overall photo")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.SERVICE)
            self._require_all_done(session, enquiry_id)
            service = session.get_service_detail(enquiry_id)
            if not service:
                raise NotFoundError(f"Service details not found for enquiry {enquiry_id}")
            saved = session.insert_photo({
                "enquiry_id": enquiry_id,
                "stage": PhotoStage.SERVICE,
                "photo_type": PhotoType.OVERALL_AFTER,
                "photo_data": photo,
                "notes": notes,
                "service_detail_id": service.id,
            })
            service = session.update_service_detail(enquiry_id, {
                "overall_after_photo_id": saved.id,
                "overall_after_notes": notes,
            })
        logger.info(f"Saved final photo {saved.id} for enquiry {enquiry_id}")
        return service

    def complete_workflow(
        self,
        enquiry_id: int,
        actual_cost: Decimal,
        work_notes: Optional[str] = None
    ) -> ServiceDetail:
        """Service finished; the enquiry enters the billing stage"""
        if actual_cost is None or actual_cost < 0:
            raise ValidationError("actualCost must be a number >= 0")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.SERVICE)
            self._require_all_done(session, enquiry_id)
            service = session.get_service_detail(enquiry_id)
            if not service or service.overall_after_photo_id is None:
                raise InvalidStateError("A final overall photo is required before completing the workflow")
            service = session.update_service_detail(enquiry_id, {
                "actual_cost": actual_cost,
                "work_notes": work_notes,
                "completed_at": datetime.now(),
            })
            session.update_enquiry(enquiry_id, {"current_stage": WorkflowStage.BILLING})
        logger.info(f"Service workflow completed for enquiry {enquiry_id}, moved to billing")
        return service

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    def create_billing(
        self,
        enquiry_id: int,
        items: Sequence[BillingLineInput],
        gst_included: bool,
        gst_rate: Optional[Decimal] = None,
        notes: Optional[str] = None,
        business_info: Optional[Dict[str, Any]] = None,
        today: Optional[date] = None
    ) -> BillingDetail:
        """
        Price the service lines and store the invoice

        The invoice number carries a random suffix; on a collision a new
        number is drawn, up to INVOICE_NUMBER_ATTEMPTS times.
        """
        calculation = calculate_invoice(items, gst_included)
        today = today or date.today()

        with self.store.transaction() as session:
            enquiry = self._enquiry_in_stage(session, enquiry_id, WorkflowStage.BILLING)
            if session.get_billing(enquiry_id):
                raise InvalidStateError(f"Billing already exists for enquiry {enquiry_id}")

            header = {
                "enquiry_id": enquiry_id,
                "final_amount": calculation.total_original,
                "gst_included": gst_included,
                "gst_rate": settings.DEFAULT_GST_RATE if gst_rate is None else gst_rate,
                "gst_amount": calculation.total_gst,
                "subtotal": calculation.subtotal,
                "total_amount": calculation.total_amount,
                "invoice_date": today,
                "customer_name": enquiry.customer_name,
                "customer_phone": enquiry.phone,
                "customer_address": enquiry.address,
                "business_info": business_info or {},
                "notes": notes,
            }
            lines = [
                item.model_dump(exclude={"line_total"})
                for item in calculation.items
            ]

            billing = None
            for attempt in range(1, settings.INVOICE_NUMBER_ATTEMPTS + 1):
                header["invoice_number"] = generate_invoice_number(today)
                try:
                    billing = session.insert_billing(header, lines)
                    break
                except DuplicateRecordError:
                    logger.warning(
                        f"Invoice number {header['invoice_number']} collided "
                        f"(attempt {attempt}/{settings.INVOICE_NUMBER_ATTEMPTS})"
                    )
            if billing is None:
                raise DuplicateRecordError(f"Could not allocate a unique invoice number for {today}")

            session.update_enquiry(enquiry_id, {"final_amount": calculation.total_amount})
        logger.info(f"Created invoice {billing.invoice_number} for enquiry {enquiry_id}: {billing.total_amount}")
        return billing

    def move_to_delivery(self, enquiry_id: int) -> DeliveryDetail:
        """Invoice exists; the enquiry enters the delivery stage"""
        with self.store.transaction() as session:
            enquiry = self._enquiry_in_stage(session, enquiry_id, WorkflowStage.BILLING)
            if not session.get_billing(enquiry_id):
                raise NotFoundError(f"Billing details not found for enquiry {enquiry_id}")
            session.update_enquiry(enquiry_id, {"current_stage": WorkflowStage.DELIVERY})
            delivery = session.insert_delivery(enquiry_id, {
                "status": DeliveryStatus.READY,
                "delivery_method": DeliveryMethod.CUSTOMER_PICKUP,
                "delivery_address": enquiry.address,
            })
        logger.info(f"Enquiry {enquiry_id} moved to delivery")
        return delivery

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def schedule_delivery(
        self,
        enquiry_id: int,
        delivery_method: DeliveryMethod,
        scheduled_time: Optional[datetime] = None,
        delivery_address: Optional[str] = None
    ) -> DeliveryDetail:
        """ready -> scheduled"""
        if delivery_method is None:
            raise ValidationError("deliveryMethod is required")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.DELIVERY)
            self._delivery(session, enquiry_id, DeliveryStatus.READY)
            fields: Dict[str, Any] = {
                "status": DeliveryStatus.SCHEDULED,
                "delivery_method": delivery_method,
                "scheduled_time": scheduled_time,
            }
            if delivery_address:
                fields["delivery_address"] = delivery_address
            delivery = session.update_delivery(enquiry_id, fields)
        logger.info(f"Delivery for enquiry {enquiry_id} scheduled ({delivery.delivery_method.value})")
        return delivery

    def mark_out_for_delivery(self, enquiry_id: int, assigned_to: str) -> DeliveryDetail:
        """scheduled -> out-for-delivery"""
        if not assigned_to or not assigned_to.strip():
            raise ValidationError("assignedTo is required")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.DELIVERY)
            self._delivery(session, enquiry_id, DeliveryStatus.SCHEDULED)
            delivery = session.update_delivery(enquiry_id, {
                "status": DeliveryStatus.OUT_FOR_DELIVERY,
                "assigned_to": assigned_to.strip(),
            })
        logger.info(f"Enquiry {enquiry_id} out for delivery with {delivery.assigned_to}")
        return delivery

    def mark_delivered(
        self,
        enquiry_id: int,
        photo: Optional[str],
        customer_signature: Optional[str] = None,
        notes: Optional[str] = None
    ) -> DeliveryDetail:
        """out-for-delivery -> delivered; the enquiry is completed"""
        photo = _require_photo(photo, "Delivery proof photo")

        with self.store.transaction() as session:
            self._enquiry_in_stage(session, enquiry_id, WorkflowStage.DELIVERY)
            self._delivery(session, enquiry_id, DeliveryStatus.OUT_FOR_DELIVERY)
            saved = session.insert_photo({
                "enquiry_id": enquiry_id,
                "stage": PhotoStage.DELIVERY,
                "photo_type": PhotoType.AFTER_PHOTO,
                "photo_data": photo,
                "notes": notes,
            })
            delivery = session.update_delivery(enquiry_id, {
                "status": DeliveryStatus.DELIVERED,
                "delivered_at": datetime.now(),
                "delivery_photo_id": saved.id,
                "customer_signature": customer_signature,
                "delivery_notes": notes,
            })
            session.update_enquiry(enquiry_id, {"current_stage": WorkflowStage.COMPLETED})
        logger.info(f"Enquiry {enquiry_id} delivered and completed")
        return delivery


# Global instance
_workflow_engine: Optional[WorkflowEngine] = None


def get_workflow_engine() -> WorkflowEngine:
    """Get or create global workflow engine instance"""
    global _workflow_engine
    if _workflow_engine is None:
        _workflow_engine = WorkflowEngine(get_store())
    return _workflow_engine


def reset_workflow_engine():
    """Reset the global workflow engine (useful for testing)."""
    global _workflow_engine
    _workflow_engine = None
