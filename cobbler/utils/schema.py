"""
Relational schema for the workshop database.

One table per entity. Stage tables that hold a single row per enquiry
carry a UNIQUE constraint on enquiry_id; every child table cascades
deletes from enquiries.
"""

import logging

from cobbler.utils.database import Database, db

logger = logging.getLogger(__name__)


ENQUIRIES_TABLE = """
CREATE TABLE IF NOT EXISTS enquiries (
    id SERIAL PRIMARY KEY,
    customer_name VARCHAR(255) NOT NULL,
    phone VARCHAR(20) NOT NULL,
    address TEXT NOT NULL,
    message TEXT NOT NULL,
    inquiry_type VARCHAR(20) NOT NULL
        CHECK (inquiry_type IN ('Instagram', 'Facebook', 'WhatsApp', 'Phone', 'Walk-in', 'Website')),
    product VARCHAR(40) NOT NULL
        CHECK (product IN ('Bag', 'Shoe', 'Wallet', 'Belt', 'All type furniture')),
    quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity > 0),
    date DATE NOT NULL DEFAULT CURRENT_DATE,
    status VARCHAR(20) NOT NULL DEFAULT 'new'
        CHECK (status IN ('new', 'contacted', 'converted', 'closed', 'lost')),
    contacted BOOLEAN NOT NULL DEFAULT FALSE,
    contacted_at TIMESTAMP NULL,
    assigned_to VARCHAR(255) NULL,
    notes TEXT NULL,
    current_stage VARCHAR(20) NOT NULL DEFAULT 'enquiry'
        CHECK (current_stage IN ('enquiry', 'pickup', 'service', 'billing', 'delivery', 'completed')),
    quoted_amount NUMERIC(10, 2) NULL,
    final_amount NUMERIC(10, 2) NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_enquiries_status ON enquiries (status);
CREATE INDEX IF NOT EXISTS idx_enquiries_current_stage ON enquiries (current_stage);
CREATE INDEX IF NOT EXISTS idx_enquiries_date ON enquiries (date);
"""

PICKUP_DETAILS_TABLE = """
CREATE TABLE IF NOT EXISTS pickup_details (
    id SERIAL PRIMARY KEY,
    enquiry_id INTEGER NOT NULL UNIQUE REFERENCES enquiries (id) ON DELETE CASCADE,
    status VARCHAR(20) NOT NULL DEFAULT 'scheduled'
        CHECK (status IN ('scheduled', 'assigned', 'collected', 'received')),
    scheduled_time TIMESTAMP NULL,
    assigned_to VARCHAR(100) NULL,
    collection_notes TEXT NULL,
    collected_at TIMESTAMP NULL,
    pin VARCHAR(10) NULL,
    collection_photo_id INTEGER NULL,
    received_photo_id INTEGER NULL,
    received_notes TEXT NULL,
    received_at TIMESTAMP NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

SERVICE_DETAILS_TABLE = """
CREATE TABLE IF NOT EXISTS service_details (
    id SERIAL PRIMARY KEY,
    enquiry_id INTEGER NOT NULL UNIQUE REFERENCES enquiries (id) ON DELETE CASCADE,
    estimated_cost NUMERIC(10, 2) NULL,
    actual_cost NUMERIC(10, 2) NULL,
    work_notes TEXT NULL,
    completed_at TIMESTAMP NULL,
    received_photo_id INTEGER NULL,
    received_notes TEXT NULL,
    overall_before_photo_id INTEGER NULL,
    overall_after_photo_id INTEGER NULL,
    overall_before_notes TEXT NULL,
    overall_after_notes TEXT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

SERVICE_TYPES_TABLE = """
CREATE TABLE IF NOT EXISTS service_types (
    id SERIAL PRIMARY KEY,
    enquiry_id INTEGER NOT NULL REFERENCES enquiries (id) ON DELETE CASCADE,
    service_type VARCHAR(40) NOT NULL
        CHECK (service_type IN ('Sole Replacement', 'Zipper Repair', 'Cleaning & Polish',
                                'Stitching', 'Leather Treatment', 'Hardware Repair')),
    status VARCHAR(20) NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'in-progress', 'done')),
    department VARCHAR(255) NULL,
    assigned_to VARCHAR(255) NULL,
    started_at TIMESTAMP NULL,
    completed_at TIMESTAMP NULL,
    work_notes TEXT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_service_types_enquiry_id ON service_types (enquiry_id);
"""

PHOTOS_TABLE = """
CREATE TABLE IF NOT EXISTS photos (
    id SERIAL PRIMARY KEY,
    enquiry_id INTEGER NOT NULL REFERENCES enquiries (id) ON DELETE CASCADE,
    stage VARCHAR(20) NOT NULL CHECK (stage IN ('pickup', 'service', 'billing', 'delivery')),
    photo_type VARCHAR(30) NOT NULL
        CHECK (photo_type IN ('before_photo', 'after_photo', 'overall_before', 'overall_after',
                              'collection_proof', 'received_condition')),
    photo_data TEXT NOT NULL,
    notes TEXT NULL,
    service_type_id INTEGER NULL REFERENCES service_types (id) ON DELETE CASCADE,
    service_detail_id INTEGER NULL REFERENCES service_details (id) ON DELETE CASCADE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_photos_enquiry_id ON photos (enquiry_id);
CREATE INDEX IF NOT EXISTS idx_photos_service_type_id ON photos (service_type_id);
"""

DELIVERY_DETAILS_TABLE = """
CREATE TABLE IF NOT EXISTS delivery_details (
    id SERIAL PRIMARY KEY,
    enquiry_id INTEGER NOT NULL UNIQUE REFERENCES enquiries (id) ON DELETE CASCADE,
    status VARCHAR(20) NOT NULL DEFAULT 'ready'
        CHECK (status IN ('ready', 'scheduled', 'out-for-delivery', 'delivered')),
    delivery_method VARCHAR(20) NOT NULL DEFAULT 'customer-pickup'
        CHECK (delivery_method IN ('customer-pickup', 'home-delivery')),
    scheduled_time TIMESTAMP NULL,
    assigned_to VARCHAR(255) NULL,
    delivery_address TEXT NULL,
    customer_signature TEXT NULL,
    delivery_notes TEXT NULL,
    delivery_photo_id INTEGER NULL,
    delivered_at TIMESTAMP NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

BILLING_DETAILS_TABLE = """
CREATE TABLE IF NOT EXISTS billing_details (
    id SERIAL PRIMARY KEY,
    enquiry_id INTEGER NOT NULL UNIQUE REFERENCES enquiries (id) ON DELETE CASCADE,
    final_amount NUMERIC(10, 2) NOT NULL,
    gst_included BOOLEAN NOT NULL DEFAULT FALSE,
    gst_rate NUMERIC(5, 2) NOT NULL DEFAULT 18.00,
    gst_amount NUMERIC(10, 2) NOT NULL,
    subtotal NUMERIC(10, 2) NOT NULL,
    total_amount NUMERIC(10, 2) NOT NULL,
    invoice_number VARCHAR(50) NOT NULL UNIQUE,
    invoice_date DATE NOT NULL,
    customer_name VARCHAR(255) NOT NULL,
    customer_phone VARCHAR(20) NOT NULL,
    customer_address TEXT NOT NULL,
    business_info JSONB NOT NULL DEFAULT '{}'::jsonb,
    notes TEXT NULL,
    generated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

BILLING_ITEMS_TABLE = """
CREATE TABLE IF NOT EXISTS billing_items (
    id SERIAL PRIMARY KEY,
    billing_id INTEGER NOT NULL REFERENCES billing_details (id) ON DELETE CASCADE,
    service_type VARCHAR(255) NOT NULL,
    original_amount NUMERIC(10, 2) NOT NULL,
    discount_value NUMERIC(5, 2) NOT NULL DEFAULT 0.00,
    discount_amount NUMERIC(10, 2) NOT NULL,
    final_amount NUMERIC(10, 2) NOT NULL,
    gst_rate NUMERIC(5, 2) NOT NULL DEFAULT 18.00,
    gst_amount NUMERIC(10, 2) NOT NULL,
    description TEXT NULL
);
CREATE INDEX IF NOT EXISTS idx_billing_items_billing_id ON billing_items (billing_id);
"""

# Creation order respects foreign keys
SCHEMA = [
    ENQUIRIES_TABLE,
    PICKUP_DETAILS_TABLE,
    SERVICE_DETAILS_TABLE,
    SERVICE_TYPES_TABLE,
    PHOTOS_TABLE,
    DELIVERY_DETAILS_TABLE,
    BILLING_DETAILS_TABLE,
    BILLING_ITEMS_TABLE,
]


def init_schema(database: Database = db) -> None:
    """Create every table and index that does not exist yet."""
    try:
        database.execute_script(SCHEMA)
        logger.info(f"Database schema verified ({len(SCHEMA)} tables)")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        raise
