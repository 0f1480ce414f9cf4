"""
Stage Query Service

Read-only views for each workflow stage: the pickup, service, billing and
delivery boards, single-enquiry views, the invoice, the completed list and
per-stage counters.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from cobbler.models.api import (
    BillingEnquiry,
    BillingStats,
    DeliveryEnquiry,
    DeliveryStats,
    PickupEnquiry,
    PickupStats,
    ServiceEnquiry,
    ServiceStats,
    ServiceTypeView,
)
from cobbler.models.domain import (
    BillingDetail,
    DeliveryStatus,
    Enquiry,
    Photo,
    PhotoStage,
    PhotoType,
    PickupStatus,
    ServiceStatus,
    WorkflowStage,
)
from cobbler.store import Session, Store, get_store
from cobbler.utils.errors import NotFoundError

logger = logging.getLogger(__name__)


def _latest(photos: List[Photo], photo_type: PhotoType, **match) -> Optional[Photo]:
    """Most recent photo of a type whose attributes equal ``match``"""
    candidates = [
        photo for photo in photos
        if photo.photo_type == photo_type
        and all(getattr(photo, key) == value for key, value in match.items())
    ]
    return candidates[-1] if candidates else None


class StageQueryService:
    """Reads enquiries together with their stage records"""

    def __init__(self, store: Optional[Store] = None):
        self.store = store or get_store()

    @staticmethod
    def _in_stage(session: Session, enquiry_id: int, stage: WorkflowStage) -> Enquiry:
        enquiry = session.get_enquiry(enquiry_id)
        if not enquiry or enquiry.current_stage != stage:
            raise NotFoundError(f"Enquiry {enquiry_id} not found in {stage.value} stage")
        return enquiry

    # ------------------------------------------------------------------
    # Pickup
    # ------------------------------------------------------------------

    @staticmethod
    def _pickup_view(session: Session, enquiry: Enquiry) -> PickupEnquiry:
        return PickupEnquiry(
            **enquiry.model_dump(),
            pickup_details=session.get_pickup(enquiry.id),
            photos=session.list_photos(enquiry.id, stage=PhotoStage.PICKUP),
        )

    def get_pickup_enquiries(self, search: Optional[str] = None) -> List[PickupEnquiry]:
        """Enquiries in the pickup stage, optionally filtered by name, address or product"""
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.PICKUP)
            if search and search.strip():
                needle = search.strip().lower()
                enquiries = [
                    e for e in enquiries
                    if needle in e.customer_name.lower()
                    or needle in e.address.lower()
                    or needle in e.product.value.lower()
                ]
            return [self._pickup_view(session, e) for e in enquiries]

    def get_pickup_enquiry(self, enquiry_id: int) -> PickupEnquiry:
        with self.store.transaction(read_only=True) as session:
            enquiry = self._in_stage(session, enquiry_id, WorkflowStage.PICKUP)
            return self._pickup_view(session, enquiry)

    def get_pickup_stats(self) -> PickupStats:
        stats = PickupStats()
        with self.store.transaction(read_only=True) as session:
            enquiries, stats.total = session.list_enquiries(stage=WorkflowStage.PICKUP)
            for enquiry in enquiries:
                pickup = session.get_pickup(enquiry.id)
                if not pickup:
                    continue
                if pickup.status == PickupStatus.SCHEDULED:
                    stats.scheduled += 1
                elif pickup.status == PickupStatus.ASSIGNED:
                    stats.assigned += 1
                elif pickup.status == PickupStatus.COLLECTED:
                    stats.collected += 1
                elif pickup.status == PickupStatus.RECEIVED:
                    stats.received += 1
        return stats

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    @staticmethod
    def _service_view(session: Session, enquiry: Enquiry) -> ServiceEnquiry:
        photos = session.list_photos(enquiry.id)
        service = session.get_service_detail(enquiry.id)

        service_types = [
            ServiceTypeView(
                **st.model_dump(),
                before_photo=_latest(photos, PhotoType.BEFORE_PHOTO, service_type_id=st.id),
                after_photo=_latest(photos, PhotoType.AFTER_PHOTO, service_type_id=st.id),
            )
            for st in session.list_service_types(enquiry.id)
        ]

        # Without an explicit overall "before" image, the received-condition photo stands in
        overall_before = _latest(photos, PhotoType.OVERALL_BEFORE) or _latest(
            photos, PhotoType.BEFORE_PHOTO, stage=PhotoStage.PICKUP
        )
        overall_after = None
        if service and service.overall_after_photo_id is not None:
            overall_after = session.get_photo(service.overall_after_photo_id)

        return ServiceEnquiry(
            **enquiry.model_dump(),
            service_details=service,
            service_types=service_types,
            overall_before_photo=overall_before,
            overall_after_photo=overall_after,
        )

    def get_service_enquiries(self) -> List[ServiceEnquiry]:
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.SERVICE)
            return [self._service_view(session, e) for e in enquiries]

    def get_service_enquiry(self, enquiry_id: int) -> ServiceEnquiry:
        with self.store.transaction(read_only=True) as session:
            enquiry = self._in_stage(session, enquiry_id, WorkflowStage.SERVICE)
            return self._service_view(session, enquiry)

    def get_service_stats(self) -> ServiceStats:
        """Counts over the service types of enquiries currently in service"""
        stats = ServiceStats()
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.SERVICE)
            for enquiry in enquiries:
                for st in session.list_service_types(enquiry.id):
                    stats.total += 1
                    if st.status == ServiceStatus.PENDING:
                        stats.pending += 1
                    elif st.status == ServiceStatus.IN_PROGRESS:
                        stats.in_progress += 1
                    elif st.status == ServiceStatus.DONE:
                        stats.done += 1
        return stats

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    @staticmethod
    def _billing_view(session: Session, enquiry: Enquiry) -> BillingEnquiry:
        return BillingEnquiry(
            **enquiry.model_dump(),
            service_details=session.get_service_detail(enquiry.id),
            service_types=session.list_service_types(enquiry.id),
            billing_details=session.get_billing(enquiry.id),
        )

    def get_billing_enquiries(self) -> List[BillingEnquiry]:
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.BILLING)
            return [self._billing_view(session, e) for e in enquiries]

    def get_billing_enquiry(self, enquiry_id: int) -> BillingEnquiry:
        with self.store.transaction(read_only=True) as session:
            enquiry = self._in_stage(session, enquiry_id, WorkflowStage.BILLING)
            return self._billing_view(session, enquiry)

    def get_invoice(self, enquiry_id: int) -> BillingDetail:
        """Invoice with its lines, in whatever stage the enquiry is now"""
        with self.store.transaction(read_only=True) as session:
            if not session.get_enquiry(enquiry_id):
                raise NotFoundError(f"Enquiry {enquiry_id} not found")
            billing = session.get_billing(enquiry_id)
        if not billing:
            raise NotFoundError(f"No invoice for enquiry {enquiry_id}")
        return billing

    def get_billing_stats(self) -> BillingStats:
        stats = BillingStats()
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.BILLING)
            stats.pending_billing = sum(1 for e in enquiries if not session.get_billing(e.id))
            billings = session.list_billings()
        stats.invoices_generated = len(billings)
        stats.total_billed = sum((b.total_amount for b in billings), Decimal("0"))
        return stats

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    @staticmethod
    def _delivery_view(session: Session, enquiry: Enquiry) -> DeliveryEnquiry:
        delivery = session.get_delivery(enquiry.id)
        photo = None
        if delivery and delivery.delivery_photo_id is not None:
            photo = session.get_photo(delivery.delivery_photo_id)
        return DeliveryEnquiry(
            **enquiry.model_dump(),
            delivery_details=delivery,
            billing_details=session.get_billing(enquiry.id),
            delivery_photo=photo,
        )

    def get_delivery_enquiries(self) -> List[DeliveryEnquiry]:
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.DELIVERY)
            return [self._delivery_view(session, e) for e in enquiries]

    def get_delivery_enquiry(self, enquiry_id: int) -> DeliveryEnquiry:
        with self.store.transaction(read_only=True) as session:
            enquiry = self._in_stage(session, enquiry_id, WorkflowStage.DELIVERY)
            return self._delivery_view(session, enquiry)

    def get_completed_enquiries(self) -> List[DeliveryEnquiry]:
        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries(stage=WorkflowStage.COMPLETED)
            return [self._delivery_view(session, e) for e in enquiries]

    def get_delivery_stats(self, today: Optional[date] = None) -> DeliveryStats:
        today = today or date.today()
        stats = DeliveryStats()
        with self.store.transaction(read_only=True) as session:
            enquiries, stats.total = session.list_enquiries(stage=WorkflowStage.DELIVERY)
            for enquiry in enquiries:
                delivery = session.get_delivery(enquiry.id)
                if not delivery:
                    continue
                if delivery.status == DeliveryStatus.READY:
                    stats.ready += 1
                elif delivery.status == DeliveryStatus.SCHEDULED:
                    stats.scheduled += 1
                elif delivery.status == DeliveryStatus.OUT_FOR_DELIVERY:
                    stats.out_for_delivery += 1

            completed, _ = session.list_enquiries(stage=WorkflowStage.COMPLETED)
            for enquiry in completed:
                delivery = session.get_delivery(enquiry.id)
                if delivery and delivery.delivered_at and delivery.delivered_at.date() == today:
                    stats.delivered_today += 1
        return stats


# Global instance
_stage_query_service: Optional[StageQueryService] = None


def get_stage_query_service() -> StageQueryService:
    """Get or create global stage query service instance"""
    global _stage_query_service
    if _stage_query_service is None:
        _stage_query_service = StageQueryService(get_store())
    return _stage_query_service


def reset_stage_query_service():
    """Reset the global stage query service (useful for testing)."""
    global _stage_query_service
    _stage_query_service = None
