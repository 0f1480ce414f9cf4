"""
Shared fixtures: a workflow engine over an in-memory store and an
authenticated HTTP client.
"""

import os
import sys
from pathlib import Path

# Settings are read at import time
os.environ.setdefault("AUTH_TOKEN", "test-token")
os.environ["STORE_BACKEND"] = "memory"

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from fastapi.testclient import TestClient

from cobbler.models.api import EnquiryCreate
from cobbler.models.domain import InquiryType, ProductType
from cobbler.services.enquiries import EnquiryService, get_enquiry_service
from cobbler.services.stage_queries import StageQueryService, get_stage_query_service
from cobbler.services.workflow import WorkflowEngine, get_workflow_engine
from cobbler.store import MemoryStore, get_store
from cobbler.utils.config import settings

PHOTO = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store):
    return WorkflowEngine(store)


@pytest.fixture
def enquiries(store, engine):
    return EnquiryService(store, engine)


@pytest.fixture
def queries(store):
    return StageQueryService(store)


@pytest.fixture
def new_enquiry(enquiries):
    """Factory creating a fresh enquiry"""
    def _create(**overrides):
        data = {
            "customer_name": "Asha Rao",
            "phone": "9876543210",
            "address": "12 MG Road, Bengaluru",
            "message": "Heel worn out on both shoes",
            "inquiry_type": InquiryType.WHATSAPP,
            "product": ProductType.SHOE,
            "quantity": 1,
        }
        data.update(overrides)
        return enquiries.create_enquiry(EnquiryCreate(**data))
    return _create


@pytest.fixture
def in_service(new_enquiry, enquiries, engine):
    """Enquiry walked through pickup into the service stage"""
    enquiry = new_enquiry()
    enquiries.convert_enquiry(enquiry.id, 1200)
    engine.schedule_pickup(enquiry.id)
    engine.assign_pickup(enquiry.id, "Ravi")
    engine.mark_collected(enquiry.id, PHOTO)
    engine.mark_received(enquiry.id, PHOTO)
    return enquiry


@pytest.fixture
def in_billing(in_service, engine):
    """Enquiry with one finished service type, moved to billing"""
    [service_type] = engine.assign_services(in_service.id, ["Sole Replacement"])
    engine.start_service(in_service.id, service_type.id, PHOTO)
    engine.complete_service(in_service.id, service_type.id, PHOTO)
    engine.save_final_photo(in_service.id, PHOTO)
    engine.complete_workflow(in_service.id, 1000)
    return in_service


@pytest.fixture
def client(store, engine, enquiries, queries):
    from cobbler.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_workflow_engine] = lambda: engine
    app.dependency_overrides[get_enquiry_service] = lambda: enquiries
    app.dependency_overrides[get_stage_query_service] = lambda: queries
    with TestClient(app) as test_client:
        test_client.headers.update({"X-Token": settings.AUTH_TOKEN})
        yield test_client
    app.dependency_overrides.clear()
