"""
Domain Models - Pydantic models for workshop entities.

These models represent the rows of the workshop database (enquiries and
the per-stage child tables) and are used for validation and for
serialising API responses. Attribute names follow the column names;
JSON output uses camelCase aliases.
"""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


# Decimal in Python, plain number in JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Enums
# ============================================================================

class InquiryType(str, Enum):
    """Channel the enquiry arrived through."""
    INSTAGRAM = "Instagram"
    FACEBOOK = "Facebook"
    WHATSAPP = "WhatsApp"
    PHONE = "Phone"
    WALK_IN = "Walk-in"
    WEBSITE = "Website"


class ProductType(str, Enum):
    """Kind of item brought in for repair."""
    BAG = "Bag"
    SHOE = "Shoe"
    WALLET = "Wallet"
    BELT = "Belt"
    FURNITURE = "All type furniture"


class EnquiryStatus(str, Enum):
    """CRM status of an enquiry."""
    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    CLOSED = "closed"
    LOST = "lost"


class WorkflowStage(str, Enum):
    """Workflow stages, declared in the only order an enquiry may move through them."""
    ENQUIRY = "enquiry"
    PICKUP = "pickup"
    SERVICE = "service"
    BILLING = "billing"
    DELIVERY = "delivery"
    COMPLETED = "completed"

    @property
    def position(self) -> int:
        return list(WorkflowStage).index(self)

    def next_stage(self) -> Optional["WorkflowStage"]:
        """The stage that follows this one, or None for completed."""
        stages = list(WorkflowStage)
        index = self.position + 1
        return stages[index] if index < len(stages) else None


class PickupStatus(str, Enum):
    SCHEDULED = "scheduled"
    ASSIGNED = "assigned"
    COLLECTED = "collected"
    RECEIVED = "received"


class ServiceKind(str, Enum):
    """The six repair tasks the workshop offers."""
    SOLE_REPLACEMENT = "Sole Replacement"
    ZIPPER_REPAIR = "Zipper Repair"
    CLEANING_POLISH = "Cleaning & Polish"
    STITCHING = "Stitching"
    LEATHER_TREATMENT = "Leather Treatment"
    HARDWARE_REPAIR = "Hardware Repair"


class ServiceStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class PhotoStage(str, Enum):
    PICKUP = "pickup"
    SERVICE = "service"
    BILLING = "billing"
    DELIVERY = "delivery"


class PhotoType(str, Enum):
    """Semantic slot a photo fills."""
    BEFORE_PHOTO = "before_photo"
    AFTER_PHOTO = "after_photo"
    OVERALL_BEFORE = "overall_before"
    OVERALL_AFTER = "overall_after"
    COLLECTION_PROOF = "collection_proof"
    RECEIVED_CONDITION = "received_condition"


class DeliveryStatus(str, Enum):
    READY = "ready"
    SCHEDULED = "scheduled"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"


class DeliveryMethod(str, Enum):
    CUSTOMER_PICKUP = "customer-pickup"
    HOME_DELIVERY = "home-delivery"


# ============================================================================
# Domain Models
# ============================================================================

class Enquiry(CamelModel):
    """Customer enquiry from the enquiries table."""

    id: int
    customer_name: str
    phone: str
    address: str
    message: str
    inquiry_type: InquiryType
    product: ProductType
    quantity: int = Field(default=1, ge=1)
    date: dt.date
    status: EnquiryStatus = EnquiryStatus.NEW
    contacted: bool = False
    contacted_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    current_stage: WorkflowStage = WorkflowStage.ENQUIRY
    quoted_amount: Optional[Money] = None
    final_amount: Optional[Money] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PickupDetail(CamelModel):
    """Pickup stage row from the pickup_details table."""

    id: int
    enquiry_id: int
    status: PickupStatus = PickupStatus.SCHEDULED
    scheduled_time: Optional[datetime] = None
    assigned_to: Optional[str] = None
    collection_notes: Optional[str] = None
    collected_at: Optional[datetime] = None
    pin: Optional[str] = None
    collection_photo_id: Optional[int] = None
    received_photo_id: Optional[int] = None
    received_notes: Optional[str] = None
    received_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ServiceDetail(CamelModel):
    """Service stage row from the service_details table."""

    id: int
    enquiry_id: int
    estimated_cost: Optional[Money] = None
    actual_cost: Optional[Money] = None
    work_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    received_photo_id: Optional[int] = None
    received_notes: Optional[str] = None
    overall_before_photo_id: Optional[int] = None
    overall_after_photo_id: Optional[int] = None
    overall_before_notes: Optional[str] = None
    overall_after_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ServiceType(CamelModel):
    """One repair task assigned to an enquiry, from the service_types table."""

    id: int
    enquiry_id: int
    service_type: ServiceKind
    status: ServiceStatus = ServiceStatus.PENDING
    department: Optional[str] = None
    assigned_to: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    work_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Photo(CamelModel):
    """Insert-only image record from the photos table."""

    id: int
    enquiry_id: int
    stage: PhotoStage
    photo_type: PhotoType
    photo_data: str
    notes: Optional[str] = None
    service_type_id: Optional[int] = None
    service_detail_id: Optional[int] = None
    created_at: Optional[datetime] = None


class DeliveryDetail(CamelModel):
    """Delivery stage row from the delivery_details table."""

    id: int
    enquiry_id: int
    status: DeliveryStatus = DeliveryStatus.READY
    delivery_method: DeliveryMethod = DeliveryMethod.CUSTOMER_PICKUP
    scheduled_time: Optional[datetime] = None
    assigned_to: Optional[str] = None
    delivery_address: Optional[str] = None
    customer_signature: Optional[str] = None
    delivery_notes: Optional[str] = None
    delivery_photo_id: Optional[int] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BillingItem(CamelModel):
    """One priced service line from the billing_items table."""

    id: Optional[int] = None
    billing_id: Optional[int] = None
    service_type: str
    original_amount: Money
    discount_value: Money = Decimal("0")
    discount_amount: Money
    final_amount: Money
    gst_rate: Money
    gst_amount: Money
    description: Optional[str] = None


class BillingDetail(CamelModel):
    """Invoice header from the billing_details table, with its lines."""

    id: int
    enquiry_id: int
    final_amount: Money
    gst_included: bool
    gst_rate: Money
    gst_amount: Money
    subtotal: Money
    total_amount: Money
    invoice_number: str
    invoice_date: date
    customer_name: str
    customer_phone: str
    customer_address: str
    business_info: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    generated_at: Optional[datetime] = None
    items: List[BillingItem] = Field(default_factory=list)
