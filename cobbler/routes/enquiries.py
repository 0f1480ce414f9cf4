"""
Enquiry (CRM) routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from cobbler.models.api import ConvertRequest, EnquiryCreate, EnquiryUpdate, StageTransitionRequest
from cobbler.models.domain import EnquiryStatus, WorkflowStage
from cobbler.services.enquiries import EnquiryService, get_enquiry_service
from cobbler.utils.auth import require_token
from cobbler.utils.responses import paginated_response, success_response

router = APIRouter(prefix="/api/enquiries", tags=["enquiries"], dependencies=[Depends(require_token)])


@router.get("")
def list_enquiries(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[EnquiryStatus] = None,
    current_stage: Optional[WorkflowStage] = Query(None, alias="currentStage"),
    search: Optional[str] = None,
    service: EnquiryService = Depends(get_enquiry_service),
):
    result = service.list_enquiries(
        page=page,
        limit=limit,
        status=status,
        current_stage=current_stage,
        search=search,
    )
    return paginated_response(result)


@router.get("/stats")
def enquiry_stats(service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.get_stats())


@router.get("/stage/{stage}")
def enquiries_by_stage(stage: WorkflowStage, service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.get_by_stage(stage))


@router.get("/{enquiry_id}")
def get_enquiry(enquiry_id: int, service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.get_enquiry(enquiry_id))


@router.post("", status_code=201)
def create_enquiry(body: EnquiryCreate, service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.create_enquiry(body), "Enquiry created successfully")


@router.put("/{enquiry_id}")
def update_enquiry(enquiry_id: int, body: EnquiryUpdate, service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.update_enquiry(enquiry_id, body), "Enquiry updated successfully")


@router.delete("/{enquiry_id}")
def delete_enquiry(enquiry_id: int, service: EnquiryService = Depends(get_enquiry_service)):
    service.delete_enquiry(enquiry_id)
    return success_response(message="Enquiry deleted successfully")


@router.patch("/{enquiry_id}/contact")
def mark_contacted(enquiry_id: int, service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.mark_contacted(enquiry_id), "Enquiry marked as contacted")


@router.patch("/{enquiry_id}/convert")
def convert_enquiry(enquiry_id: int, body: ConvertRequest, service: EnquiryService = Depends(get_enquiry_service)):
    return success_response(service.convert_enquiry(enquiry_id, body.quoted_amount), "Enquiry converted")


@router.patch("/{enquiry_id}/stage")
def transition_stage(
    enquiry_id: int,
    body: StageTransitionRequest,
    service: EnquiryService = Depends(get_enquiry_service),
):
    enquiry = service.transition_stage(enquiry_id, body.stage)
    return success_response(enquiry, f"Enquiry moved to {enquiry.current_stage.value}")
