"""
Service stage routes.
"""

from fastapi import APIRouter, Depends

from cobbler.models.api import (
    AssignServicesRequest,
    CompleteServiceRequest,
    CompleteWorkflowRequest,
    FinalPhotoRequest,
    StartServiceRequest,
)
from cobbler.services.stage_queries import StageQueryService, get_stage_query_service
from cobbler.services.workflow import WorkflowEngine, get_workflow_engine
from cobbler.utils.auth import require_token
from cobbler.utils.responses import success_response

router = APIRouter(prefix="/api/service", tags=["service"], dependencies=[Depends(require_token)])


@router.get("/stats")
def service_stats(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_service_stats())


@router.get("/enquiries")
def service_enquiries(queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_service_enquiries())


@router.get("/enquiries/{enquiry_id}")
def service_enquiry(enquiry_id: int, queries: StageQueryService = Depends(get_stage_query_service)):
    return success_response(queries.get_service_enquiry(enquiry_id))


@router.post("/enquiries/{enquiry_id}/assign")
def assign_services(
    enquiry_id: int,
    body: AssignServicesRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    created = engine.assign_services(enquiry_id, body.service_types, body.department, body.assigned_to)
    return success_response(created, f"{len(created)} service(s) assigned")


@router.post("/enquiries/{enquiry_id}/start")
def start_service(
    enquiry_id: int,
    body: StartServiceRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    service_type = engine.start_service(enquiry_id, body.service_type_id, body.before_photo, body.notes)
    return success_response(service_type, "Service started")


@router.post("/enquiries/{enquiry_id}/complete")
def complete_service(
    enquiry_id: int,
    body: CompleteServiceRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    service_type = engine.complete_service(enquiry_id, body.service_type_id, body.after_photo, body.notes)
    return success_response(service_type, "Service completed")


@router.post("/enquiries/{enquiry_id}/final-photo")
def save_final_photo(
    enquiry_id: int,
    body: FinalPhotoRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    service = engine.save_final_photo(enquiry_id, body.after_photo, body.notes)
    return success_response(service, "Final photo saved")


@router.post("/enquiries/{enquiry_id}/complete-workflow")
def complete_workflow(
    enquiry_id: int,
    body: CompleteWorkflowRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    service = engine.complete_workflow(enquiry_id, body.actual_cost, body.work_notes)
    return success_response(service, "Service workflow completed, moved to billing")
