"""
Enquiry Service

CRM operations over customer enquiries: paginated listing with filters and
search, CRUD, mark-contacted, convert, stage transitions and dashboard
statistics. Stage changes with side effects are delegated to the
WorkflowEngine.
"""

import logging
import math
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from cobbler.models.api import EnquiryCreate, EnquiryStats, EnquiryUpdate
from cobbler.models.domain import Enquiry, EnquiryStatus, WorkflowStage
from cobbler.services.workflow import WorkflowEngine, get_workflow_engine
from cobbler.store import Store, get_store
from cobbler.utils.config import settings
from cobbler.utils.errors import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CONVERTIBLE_STATUSES = {EnquiryStatus.NEW, EnquiryStatus.CONTACTED}

# Operation that performs each stage entry, with its side effects
STAGE_ENTRY_OPERATIONS = {
    WorkflowStage.SERVICE: "PATCH /api/pickup/enquiries/{id}/receive",
    WorkflowStage.BILLING: "POST /api/service/enquiries/{id}/complete-workflow",
    WorkflowStage.DELIVERY: "PATCH /api/billing/enquiries/{id}/move-to-delivery",
    WorkflowStage.COMPLETED: "PATCH /api/delivery/enquiries/{id}/deliver",
}


class EnquiryService:
    """CRM operations on enquiries"""

    def __init__(self, store: Optional[Store] = None, workflow: Optional[WorkflowEngine] = None):
        self.store = store or get_store()
        self.workflow = workflow or WorkflowEngine(self.store)

    def _require(self, session, enquiry_id: int, stage: Optional[WorkflowStage] = None) -> Enquiry:
        enquiry = session.get_enquiry(enquiry_id, for_update=True)
        if not enquiry:
            raise NotFoundError(f"Enquiry {enquiry_id} not found")
        if stage is not None and enquiry.current_stage != stage:
            raise NotFoundError(f"Enquiry {enquiry_id} not found in {stage.value} stage")
        return enquiry

    def list_enquiries(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        current_stage: Optional[str] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        List enquiries, newest first

        Returns:
            Dict with data, total, page, limit and total_pages
        """
        limit = limit or settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= limit <= settings.MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")

        with self.store.transaction(read_only=True) as session:
            rows, total = session.list_enquiries(
                status=status,
                stage=current_stage,
                search=search.strip() if search else None,
                offset=(page - 1) * limit,
                limit=limit,
            )
        return {
            "data": rows,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit),
        }

    def get_enquiry(self, enquiry_id: int) -> Enquiry:
        with self.store.transaction(read_only=True) as session:
            enquiry = session.get_enquiry(enquiry_id)
        if not enquiry:
            raise NotFoundError(f"Enquiry {enquiry_id} not found")
        return enquiry

    def create_enquiry(self, data: EnquiryCreate) -> Enquiry:
        fields = data.model_dump(exclude_none=True)
        fields.setdefault("date", date.today())
        fields.update(status=EnquiryStatus.NEW, contacted=False, current_stage=WorkflowStage.ENQUIRY)
        with self.store.transaction() as session:
            enquiry = session.insert_enquiry(fields)
        logger.info(f"Created enquiry {enquiry.id} for {enquiry.customer_name}")
        return enquiry

    def update_enquiry(self, enquiry_id: int, data: EnquiryUpdate) -> Enquiry:
        fields = data.model_dump(exclude_unset=True)
        for required in ("customer_name", "phone", "address", "message", "inquiry_type",
                         "product", "quantity", "date", "status"):
            if required in fields and fields[required] is None:
                raise ValidationError(f"{required} cannot be null")

        with self.store.transaction() as session:
            enquiry = self._require(session, enquiry_id)
            if fields:
                enquiry = session.update_enquiry(enquiry_id, fields)
        logger.info(f"Updated enquiry {enquiry_id}: {sorted(fields)}")
        return enquiry

    def delete_enquiry(self, enquiry_id: int) -> None:
        with self.store.transaction() as session:
            if not session.delete_enquiry(enquiry_id):
                raise NotFoundError(f"Enquiry {enquiry_id} not found")
        logger.info(f"Deleted enquiry {enquiry_id} and its workflow records")

    def mark_contacted(self, enquiry_id: int) -> Enquiry:
        """Follow-up done; only while the enquiry is still in the enquiry stage"""
        with self.store.transaction() as session:
            self._require(session, enquiry_id, WorkflowStage.ENQUIRY)
            enquiry = session.update_enquiry(enquiry_id, {
                "status": EnquiryStatus.CONTACTED,
                "contacted": True,
                "contacted_at": datetime.now(),
            })
        logger.info(f"Enquiry {enquiry_id} marked as contacted")
        return enquiry

    def convert_enquiry(self, enquiry_id: int, quoted_amount: Decimal) -> Enquiry:
        """Turn an enquiry into a job at the quoted price"""
        if quoted_amount is None or quoted_amount < 0:
            raise ValidationError("quotedAmount must be a number >= 0")

        with self.store.transaction() as session:
            enquiry = self._require(session, enquiry_id, WorkflowStage.ENQUIRY)
            if enquiry.status not in CONVERTIBLE_STATUSES:
                logger.warning(f"Refused to convert enquiry {enquiry_id} with status {enquiry.status.value}")
                raise InvalidStateError(
                    f"Only new or contacted enquiries can be converted (status is {enquiry.status.value})"
                )
            enquiry = session.update_enquiry(enquiry_id, {
                "status": EnquiryStatus.CONVERTED,
                "contacted": True,
                "contacted_at": datetime.now(),
                "quoted_amount": quoted_amount,
            })
        logger.info(f"Converted enquiry {enquiry_id} at {quoted_amount}")
        return enquiry

    def transition_stage(self, enquiry_id: int, stage: WorkflowStage) -> Enquiry:
        """
        Move an enquiry to the next stage

        Only the immediate next stage is accepted. Entering pickup schedules
        the pickup; every later stage has its own workflow operation.

        Raises:
            NotFoundError: enquiry does not exist
            InvalidStateError: backward, repeated or skipping transition,
                or a stage that must be entered through its own operation
        """
        current = self.get_enquiry(enquiry_id).current_stage
        expected = current.next_stage()
        if stage != expected:
            logger.warning(f"Refused stage change {current.value} -> {stage.value} for enquiry {enquiry_id}")
            if expected is None:
                raise InvalidStateError(f"Enquiry {enquiry_id} is already completed")
            raise InvalidStateError(
                f"Enquiry {enquiry_id} is in stage '{current.value}' and can only move to '{expected.value}'"
            )

        if stage == WorkflowStage.PICKUP:
            self.workflow.schedule_pickup(enquiry_id)
            return self.get_enquiry(enquiry_id)

        operation = STAGE_ENTRY_OPERATIONS[stage].format(id=enquiry_id)
        raise InvalidStateError(f"Moving to '{stage.value}' requires its workflow step: {operation}")

    def get_by_stage(self, stage: WorkflowStage) -> List[Enquiry]:
        with self.store.transaction(read_only=True) as session:
            rows, _ = session.list_enquiries(stage=stage)
        return rows

    def get_stats(self, today: Optional[date] = None) -> EnquiryStats:
        """CRM dashboard counters"""
        today = today or date.today()
        week_start = today - timedelta(days=today.weekday())

        with self.store.transaction(read_only=True) as session:
            enquiries, _ = session.list_enquiries()

        stats = EnquiryStats()
        for enquiry in enquiries:
            if enquiry.date.year == today.year and enquiry.date.month == today.month:
                stats.total_current_month += 1
            if enquiry.status == EnquiryStatus.NEW and enquiry.date >= week_start:
                stats.new_this_week += 1
            if enquiry.status == EnquiryStatus.CONVERTED:
                stats.converted += 1
            if enquiry.status == EnquiryStatus.CONTACTED:
                stats.pending_follow_up += 1
        return stats


# Global instance
_enquiry_service: Optional[EnquiryService] = None


def get_enquiry_service() -> EnquiryService:
    """Get or create global enquiry service instance"""
    global _enquiry_service
    if _enquiry_service is None:
        _enquiry_service = EnquiryService(get_store(), get_workflow_engine())
    return _enquiry_service


def reset_enquiry_service():
    """Reset the global enquiry service (useful for testing)."""
    global _enquiry_service
    _enquiry_service = None
