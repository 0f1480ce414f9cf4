"""
Models package for the Cobbler Workshop API.
"""

# Domain models
from .domain import (
    Money,
    CamelModel,
    Enquiry,
    PickupDetail,
    ServiceDetail,
    ServiceType,
    Photo,
    DeliveryDetail,
    BillingDetail,
    BillingItem,
    InquiryType,
    ProductType,
    EnquiryStatus,
    WorkflowStage,
    PickupStatus,
    ServiceKind,
    ServiceStatus,
    PhotoStage,
    PhotoType,
    DeliveryStatus,
    DeliveryMethod,
)

# API models
from .api import (
    EnquiryCreate,
    EnquiryUpdate,
    ConvertRequest,
    StageTransitionRequest,
    EnquiryStats,
    SchedulePickupRequest,
    AssignPickupRequest,
    CollectRequest,
    ReceiveRequest,
    PickupStats,
    AssignServicesRequest,
    StartServiceRequest,
    CompleteServiceRequest,
    FinalPhotoRequest,
    CompleteWorkflowRequest,
    ServiceStats,
    BillingLineInput,
    BillingLineResult,
    BillingCalculation,
    CalculateRequest,
    CreateBillingRequest,
    BillingStats,
    ScheduleDeliveryRequest,
    DispatchRequest,
    DeliverRequest,
    DeliveryStats,
    PickupEnquiry,
    ServiceTypeView,
    ServiceEnquiry,
    BillingEnquiry,
    DeliveryEnquiry,
    HealthCheckResponse,
)

__all__ = [
    # Domain
    "Money",
    "CamelModel",
    "Enquiry",
    "PickupDetail",
    "ServiceDetail",
    "ServiceType",
    "Photo",
    "DeliveryDetail",
    "BillingDetail",
    "BillingItem",
    "InquiryType",
    "ProductType",
    "EnquiryStatus",
    "WorkflowStage",
    "PickupStatus",
    "ServiceKind",
    "ServiceStatus",
    "PhotoStage",
    "PhotoType",
    "DeliveryStatus",
    "DeliveryMethod",
    # API
    "EnquiryCreate",
    "EnquiryUpdate",
    "ConvertRequest",
    "StageTransitionRequest",
    "EnquiryStats",
    "SchedulePickupRequest",
    "AssignPickupRequest",
    "CollectRequest",
    "ReceiveRequest",
    "PickupStats",
    "AssignServicesRequest",
    "StartServiceRequest",
    "CompleteServiceRequest",
    "FinalPhotoRequest",
    "CompleteWorkflowRequest",
    "ServiceStats",
    "BillingLineInput",
    "BillingLineResult",
    "BillingCalculation",
    "CalculateRequest",
    "CreateBillingRequest",
    "BillingStats",
    "ScheduleDeliveryRequest",
    "DispatchRequest",
    "DeliverRequest",
    "DeliveryStats",
    "PickupEnquiry",
    "ServiceTypeView",
    "ServiceEnquiry",
    "BillingEnquiry",
    "DeliveryEnquiry",
    "HealthCheckResponse",
]
