"""
Delivery stage routes.
"""

from fastapi import APIRouter, Depends

from cobbler.models.api import DeliverRequest, DispatchRequest, ScheduleDeliveryRequest
from cobbler.services.stage_queries import StageQueryService, get_stage_query_service
from cobbler.services.workflow import WorkflowEngine, get_workflow_engine
from cobbler.utils.auth import require_token
from cobbler.utils.responses import success_response

router = APIRouter(prefix="/api/delivery", tags=["delivery"], dependencies=[Depends(require_token)])


@router.get("/stats")
def delivery_stats(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_delivery_stats())


@router.get("/enquiries")
def delivery_enquiries(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_delivery_enquiries())


@router.get("/enquiries/{enquiry_id}")
def delivery_enquiry(enquiry_id: int, queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_delivery_enquiry(enquiry_id))


@router.get("/completed")
def completed_enquiries(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_completed_enquiries())


@router.patch("/enquiries/{enquiry_id}/schedule")
def schedule_delivery(
    enquiry_id: int,
    body: ScheduleDeliveryRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    delivery = engine.schedule_delivery(
        enquiry_id, body.delivery_method, body.scheduled_time, body.delivery_address
    )
    return success_response(delivery, "Delivery scheduled")


@router.patch("/enquiries/{enquiry_id}/dispatch")
def dispatch(
    enquiry_id: int,
    body: DispatchRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    delivery = engine.mark_out_for_delivery(enquiry_id, body.assigned_to)
    return success_response(delivery, "Out for delivery")


@router.patch("/enquiries/{enquiry_id}/deliver")
def mark_delivered(
    enquiry_id: int,
    body: DeliverRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    delivery = engine.mark_delivered(enquiry_id, body.delivery_photo, body.customer_signature, body.notes)
    return success_response(delivery, "Delivered, enquiry completed")
