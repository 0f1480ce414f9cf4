"""
API Models - Pydantic models for API requests and responses.

These models define the structure of HTTP request and response payloads
for the FastAPI endpoints. Keys are camelCase on the wire; the snake_case
field names are accepted as well.
"""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from .domain import (
    BillingDetail,
    CamelModel,
    DeliveryDetail,
    DeliveryMethod,
    Enquiry,
    EnquiryStatus,
    InquiryType,
    Money,
    Photo,
    PickupDetail,
    ProductType,
    ServiceDetail,
    ServiceKind,
    ServiceType,
    WorkflowStage,
)


# ============================================================================
# Enquiry API Models
# ============================================================================

class EnquiryCreate(CamelModel):
    """Request payload for creating an enquiry."""

    customer_name: str = Field(..., min_length=1, max_length=255, description="Customer name")
    phone: str = Field(..., min_length=1, max_length=20, description="Contact phone number")
    address: str = Field(..., min_length=1, description="Pickup / delivery address")
    message: str = Field(..., min_length=1, description="What the customer asked for")
    inquiry_type: InquiryType = Field(..., description="Channel the enquiry came from")
    product: ProductType = Field(..., description="Item to repair")
    quantity: int = Field(default=1, ge=1, description="Number of items")
    date: Optional[dt.date] = Field(default=None, description="Enquiry date, defaults to today")
    assigned_to: Optional[str] = Field(default=None, description="Staff member following up")
    notes: Optional[str] = Field(default=None, description="Internal notes")
    quoted_amount: Optional[Money] = Field(default=None, ge=0, description="Price quoted so far")


class EnquiryUpdate(CamelModel):
    """Request payload for a partial enquiry update. The workflow stage is not editable here."""

    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=20)
    address: Optional[str] = Field(default=None, min_length=1)
    message: Optional[str] = Field(default=None, min_length=1)
    inquiry_type: Optional[InquiryType] = None
    product: Optional[ProductType] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    date: Optional[dt.date] = None
    status: Optional[EnquiryStatus] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    quoted_amount: Optional[Money] = Field(default=None, ge=0)
    final_amount: Optional[Money] = Field(default=None, ge=0)


class ConvertRequest(CamelModel):
    """Request payload for converting an enquiry into a job."""

    quoted_amount: Money = Field(..., ge=0, description="Agreed price")


class StageTransitionRequest(CamelModel):
    """Request payload for moving an enquiry to another stage."""

    stage: WorkflowStage = Field(..., description="Target stage")


class EnquiryStats(CamelModel):
    """CRM dashboard counters."""

    total_current_month: int = 0
    new_this_week: int = 0
    converted: int = 0
    pending_follow_up: int = 0


# ============================================================================
# Pickup API Models
# ============================================================================

class SchedulePickupRequest(CamelModel):
    scheduled_time: Optional[datetime] = Field(default=None, description="When the item will be collected")
    pin: Optional[str] = Field(default=None, max_length=10, description="Pickup verification PIN")


class AssignPickupRequest(CamelModel):
    assigned_to: str = Field(..., min_length=1, description="Staff member collecting the item")


class CollectRequest(CamelModel):
    collection_photo: Optional[str] = Field(default=None, description="Encoded proof-of-collection image")
    notes: Optional[str] = None


class ReceiveRequest(CamelModel):
    received_photo: Optional[str] = Field(default=None, description="Encoded image of the item as received")
    notes: Optional[str] = None
    estimated_cost: Optional[Money] = Field(default=None, ge=0)


class PickupStats(CamelModel):
    scheduled: int = 0
    assigned: int = 0
    collected: int = 0
    received: int = 0
    total: int = 0


# ============================================================================
# Service API Models
# ============================================================================

class AssignServicesRequest(CamelModel):
    service_types: List[ServiceKind] = Field(..., min_length=1, description="Repair tasks to add")
    department: Optional[str] = None
    assigned_to: Optional[str] = None


class StartServiceRequest(CamelModel):
    service_type_id: int = Field(..., description="Service type to start")
    before_photo: Optional[str] = Field(default=None, description="Encoded image before work begins")
    notes: Optional[str] = None


class CompleteServiceRequest(CamelModel):
    service_type_id: int = Field(..., description="Service type to complete")
    after_photo: Optional[str] = Field(default=None, description="Encoded image after the work")
    notes: Optional[str] = None


class FinalPhotoRequest(CamelModel):
    after_photo: Optional[str] = Field(default=None, description="Encoded image of the finished item")
    notes: Optional[str] = None


class CompleteWorkflowRequest(CamelModel):
    actual_cost: Money = Field(..., ge=0, description="Final cost of the work performed")
    work_notes: Optional[str] = None


class ServiceStats(CamelModel):
    pending: int = 0
    in_progress: int = 0
    done: int = 0
    total: int = 0


# ============================================================================
# Billing API Models
# ============================================================================

class BillingLineInput(CamelModel):
    """One priced service line as submitted by the client."""

    service_type: str = Field(..., min_length=1, description="Service name printed on the invoice")
    original_amount: Decimal = Field(..., description="Price before discount")
    discount_percent: Decimal = Field(default=Decimal("0"), description="Discount in percent")
    gst_rate: Decimal = Field(default=Decimal("0"), description="GST rate in percent")
    description: Optional[str] = None


class BillingLineResult(CamelModel):
    """A billing line with its discount, GST and final amounts filled in."""

    service_type: str
    original_amount: Money
    discount_value: Money = Field(..., description="Discount in percent")
    discount_amount: Money
    final_amount: Money = Field(..., description="Line amount after discount, before GST")
    gst_rate: Money
    gst_amount: Money
    line_total: Money = Field(..., description="final_amount + gst_amount")
    description: Optional[str] = None


class BillingCalculation(CamelModel):
    """Calculated lines and invoice totals."""

    items: List[BillingLineResult]
    total_original: Money
    total_discount: Money
    subtotal: Money
    total_gst: Money
    total_amount: Money


class CalculateRequest(CamelModel):
    gst_included: bool = Field(default=False, description="Apply per-line GST")
    items: List[BillingLineInput] = Field(default_factory=list)


class CreateBillingRequest(CamelModel):
    gst_included: bool = Field(default=False, description="Apply per-line GST")
    gst_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, description="Invoice-level GST rate")
    items: List[BillingLineInput] = Field(default_factory=list)
    notes: Optional[str] = None
    business_info: Dict[str, Any] = Field(default_factory=dict, description="Shop details printed on the invoice")


class BillingStats(CamelModel):
    pending_billing: int = 0
    invoices_generated: int = 0
    total_billed: Money = Decimal("0")


# ============================================================================
# Delivery API Models
# ============================================================================

class ScheduleDeliveryRequest(CamelModel):
    delivery_method: DeliveryMethod = Field(..., description="Customer pickup or home delivery")
    scheduled_time: Optional[datetime] = None
    delivery_address: Optional[str] = None


class DispatchRequest(CamelModel):
    assigned_to: str = Field(..., min_length=1, description="Staff member delivering the item")


class DeliverRequest(CamelModel):
    delivery_photo: Optional[str] = Field(default=None, description="Encoded proof-of-delivery image")
    customer_signature: Optional[str] = None
    notes: Optional[str] = None


class DeliveryStats(CamelModel):
    ready: int = 0
    scheduled: int = 0
    out_for_delivery: int = 0
    delivered_today: int = 0
    total: int = 0


# ============================================================================
# Stage View Models
# ============================================================================

class PickupEnquiry(Enquiry):
    """Enquiry on the pickup board."""

    pickup_details: Optional[PickupDetail] = None
    photos: List[Photo] = Field(default_factory=list)


class ServiceTypeView(ServiceType):
    """Service type with its before and after photos."""

    before_photo: Optional[Photo] = None
    after_photo: Optional[Photo] = None


class ServiceEnquiry(Enquiry):
    """Enquiry on the service board."""

    service_details: Optional[ServiceDetail] = None
    service_types: List[ServiceTypeView] = Field(default_factory=list)
    overall_before_photo: Optional[Photo] = None
    overall_after_photo: Optional[Photo] = None


class BillingEnquiry(Enquiry):
    """Enquiry on the billing board."""

    service_details: Optional[ServiceDetail] = None
    service_types: List[ServiceType] = Field(default_factory=list)
    billing_details: Optional[BillingDetail] = None


class DeliveryEnquiry(Enquiry):
    """Enquiry on the delivery board or the completed list."""

    delivery_details: Optional[DeliveryDetail] = None
    billing_details: Optional[BillingDetail] = None
    delivery_photo: Optional[Photo] = None


# ============================================================================
# Health Check
# ============================================================================

class HealthCheckResponse(CamelModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status")
    database: str = Field(..., description="Store connectivity")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=datetime.now)
