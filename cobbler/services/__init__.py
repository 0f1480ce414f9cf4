"""
Services package for the Cobbler Workshop API.
"""

from .billing import (
    calculate_invoice,
    calculate_line,
    generate_invoice_number,
    validate_lines,
)
from .workflow import (
    WorkflowEngine,
    get_workflow_engine,
    reset_workflow_engine,
)
from .enquiries import (
    EnquiryService,
    get_enquiry_service,
    reset_enquiry_service,
)
from .stage_queries import (
    StageQueryService,
    get_stage_query_service,
    reset_stage_query_service,
)

__all__ = [
    "calculate_invoice",
    "calculate_line",
    "generate_invoice_number",
    "validate_lines",
    "WorkflowEngine",
    "get_workflow_engine",
    "reset_workflow_engine",
    "EnquiryService",
    "get_enquiry_service",
    "reset_enquiry_service",
    "StageQueryService",
    "get_stage_query_service",
    "reset_stage_query_service",
]
