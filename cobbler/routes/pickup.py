"""
Pickup stage routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from cobbler.models.api import AssignPickupRequest, CollectRequest, ReceiveRequest, SchedulePickupRequest
from cobbler.services.stage_queries import StageQueryService, get_stage_query_service
from cobbler.services.workflow import WorkflowEngine, get_workflow_engine
from cobbler.utils.auth import require_token
from cobbler.utils.responses import success_response

router = APIRouter(prefix="/api/pickup", tags=["pickup"], dependencies=[Depends(require_token)])


@router.get("/stats")
def pickup_stats(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_pickup_stats())


@router.get("/enquiries")
def pickup_enquiries(
    search: Optional[str] = None,
    queries: StageQueryService = Depends(get_stage_query_service),
):
    return success_response(queries.get_pickup_enquiries(search))


@router.get("/enquiries/{enquiry_id}")
def pickup_enquiry(enquiry_id: int, queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_pickup_enquiry(enquiry_id))


@router.patch("/enquiries/{enquiry_id}/schedule")
def schedule_pickup(
    enquiry_id: int,
    body: Optional[SchedulePickupRequest] = None,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    body = body or SchedulePickupRequest()
    pickup = engine.schedule_pickup(enquiry_id, body.scheduled_time, body.pin)
    return success_response(pickup, "Pickup scheduled")


@router.patch("/enquiries/{enquiry_id}/assign")
def assign_pickup(
    enquiry_id: int,
    body: AssignPickupRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    pickup = engine.assign_pickup(enquiry_id, body.assigned_to)
    return success_response(pickup, f"Pickup assigned to {pickup.assigned_to}")


@router.patch("/enquiries/{enquiry_id}/collect")
def mark_collected(
    enquiry_id: int,
    body: CollectRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    pickup = engine.mark_collected(enquiry_id, body.collection_photo, body.notes)
    return success_response(pickup, "Item marked as collected")


@router.patch("/enquiries/{enquiry_id}/receive")
def mark_received(
    enquiry_id: int,
    body: ReceiveRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    service = engine.mark_received(enquiry_id, body.received_photo, body.notes, body.estimated_cost)
    return success_response(service, "Item received and moved to service")
