"""
Response envelope helpers

Every body has the shape {success, data?, error?, message?}; list bodies
add total, page, limit and totalPages.
"""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if message:
        body["message"] = message
    return body


def paginated_response(page: Dict[str, Any]) -> Dict[str, Any]:
    """Envelope for the dict returned by EnquiryService.list_enquiries"""
    return {
        "success": True,
        "data": jsonable_encoder(page["data"]),
        "total": page["total"],
        "page": page["page"],
        "limit": page["limit"],
        "totalPages": page["total_pages"],
    }


def error_response(error: str, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    body.update(jsonable_encoder(extra))
    return body
