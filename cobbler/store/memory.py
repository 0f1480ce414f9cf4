"""
In-memory store

Keeps every table as a dict keyed by id (or by enquiry id for the
one-per-enquiry stage tables). A transaction works on a deep copy of the
data and swaps it in only when the block exits cleanly, so a failed
transition leaves nothing behind. Used for local runs and tests.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from cobbler.models.domain import (
    BillingDetail,
    BillingItem,
    DeliveryDetail,
    Enquiry,
    Photo,
    PickupDetail,
    ServiceDetail,
    ServiceType,
)
from cobbler.utils.errors import DuplicateRecordError

logger = logging.getLogger(__name__)

ENQUIRY_DEFAULTS = {
    "quantity": 1,
    "status": "new",
    "contacted": False,
    "current_stage": "enquiry",
}

TABLES = (
    "enquiries",
    "pickup_details",
    "service_details",
    "service_types",
    "photos",
    "delivery_details",
    "billing_details",
    "billing_items",
)


def _value(value: Any) -> Any:
    """Store enums by value, like the database does"""
    return getattr(value, "value", value)


class MemorySession:
    """Typed reads and writes over one working copy of the store data"""

    def __init__(self, data: Dict[str, Any]):
        self.data = data

    def _next_id(self, table: str) -> int:
        self.data["sequences"][table] += 1
        return self.data["sequences"][table]

    def _new_row(self, table: str, fields: Dict[str, Any], timestamps: Tuple[str, ...]) -> Dict[str, Any]:
        now = datetime.now()
        row = {key: _value(value) for key, value in fields.items()}
        row["id"] = self._next_id(table)
        for column in timestamps:
            row.setdefault(column, now)
        return row

    @staticmethod
    def _apply(row: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
        row.update({key: _value(value) for key, value in fields.items()})
        row["updated_at"] = datetime.now()
        return row

    def _by_enquiry(self, table: str, enquiry_id: int) -> Optional[Dict[str, Any]]:
        for row in self.data[table].values():
            if row["enquiry_id"] == enquiry_id:
                return row
        return None

    def _insert_one_per_enquiry(self, table: str, enquiry_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        if self._by_enquiry(table, enquiry_id):
            raise DuplicateRecordError(f"{table} already has a row for enquiry {enquiry_id}")
        row = self._new_row(table, {"enquiry_id": enquiry_id, **fields}, ("created_at", "updated_at"))
        self.data[table][row["id"]] = row
        return row

    # ------------------------------------------------------------------
    # Enquiries
    # ------------------------------------------------------------------

    def insert_enquiry(self, fields: Dict[str, Any]) -> Enquiry:
        values = {**ENQUIRY_DEFAULTS, "date": date.today(), **{k: v for k, v in fields.items() if v is not None}}
        row = self._new_row("enquiries", values, ("created_at", "updated_at"))
        self.data["enquiries"][row["id"]] = row
        return Enquiry(**row)

    def get_enquiry(self, enquiry_id: int, for_update: bool = False) -> Optional[Enquiry]:
        row = self.data["enquiries"].get(enquiry_id)
        return Enquiry(**row) if row else None

    def update_enquiry(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[Enquiry]:
        row = self.data["enquiries"].get(enquiry_id)
        return Enquiry(**self._apply(row, fields)) if row else None

    def delete_enquiry(self, enquiry_id: int) -> bool:
        if self.data["enquiries"].pop(enquiry_id, None) is None:
            return False
        billing_ids = {
            row["id"] for row in self.data["billing_details"].values() if row["enquiry_id"] == enquiry_id
        }
        for table in TABLES[1:]:
            rows = self.data[table]
            if table == "billing_items":
                doomed = [key for key, row in rows.items() if row["billing_id"] in billing_ids]
            else:
                doomed = [key for key, row in rows.items() if row["enquiry_id"] == enquiry_id]
            for key in doomed:
                del rows[key]
        return True

    def list_enquiries(
        self,
        status: Optional[str] = None,
        stage: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> Tuple[List[Enquiry], int]:
        rows = list(self.data["enquiries"].values())
        if status:
            rows = [row for row in rows if row["status"] == _value(status)]
        if stage:
            rows = [row for row in rows if row["current_stage"] == _value(stage)]
        if search:
            needle = search.lower()
            rows = [
                row for row in rows
                if any(needle in str(row.get(column) or "").lower()
                       for column in ("customer_name", "phone", "address", "message"))
            ]
        rows.sort(key=lambda row: (row["created_at"], row["id"]), reverse=True)
        total = len(rows)
        if limit is not None:
            rows = rows[offset:offset + limit]
        return [Enquiry(**row) for row in rows], total

    # ------------------------------------------------------------------
    # Pickup
    # ------------------------------------------------------------------

    def get_pickup(self, enquiry_id: int) -> Optional[PickupDetail]:
        row = self._by_enquiry("pickup_details", enquiry_id)
        return PickupDetail(**row) if row else None

    def insert_pickup(self, enquiry_id: int, fields: Dict[str, Any]) -> PickupDetail:
        return PickupDetail(**self._insert_one_per_enquiry("pickup_details", enquiry_id, fields))

    def update_pickup(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[PickupDetail]:
        row = self._by_enquiry("pickup_details", enquiry_id)
        return PickupDetail(**self._apply(row, fields)) if row else None

    # ------------------------------------------------------------------
    # Photos
    # ------------------------------------------------------------------

    def insert_photo(self, fields: Dict[str, Any]) -> Photo:
        row = self._new_row("photos", fields, ("created_at",))
        self.data["photos"][row["id"]] = row
        return Photo(**row)

    def get_photo(self, photo_id: int) -> Optional[Photo]:
        row = self.data["photos"].get(photo_id)
        return Photo(**row) if row else None

    def list_photos(self, enquiry_id: int, stage: Optional[str] = None) -> List[Photo]:
        return [
            Photo(**row) for row in sorted(self.data["photos"].values(), key=lambda r: r["id"])
            if row["enquiry_id"] == enquiry_id and (not stage or row["stage"] == _value(stage))
        ]

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    def get_service_detail(self, enquiry_id: int) -> Optional[ServiceDetail]:
        row = self._by_enquiry("service_details", enquiry_id)
        return ServiceDetail(**row) if row else None

    def insert_service_detail(self, enquiry_id: int, fields: Dict[str, Any]) -> ServiceDetail:
        return ServiceDetail(**self._insert_one_per_enquiry("service_details", enquiry_id, fields))

    def update_service_detail(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[ServiceDetail]:
        row = self._by_enquiry("service_details", enquiry_id)
        return ServiceDetail(**self._apply(row, fields)) if row else None

    def list_service_types(self, enquiry_id: int) -> List[ServiceType]:
        return [
            ServiceType(**row) for row in sorted(self.data["service_types"].values(), key=lambda r: r["id"])
            if row["enquiry_id"] == enquiry_id
        ]

    def get_service_type(self, service_type_id: int) -> Optional[ServiceType]:
        row = self.data["service_types"].get(service_type_id)
        return ServiceType(**row) if row else None

    def insert_service_type(self, enquiry_id: int, fields: Dict[str, Any]) -> ServiceType:
        values = {"status": "pending", **fields, "enquiry_id": enquiry_id}
        row = self._new_row("service_types", values, ("created_at", "updated_at"))
        self.data["service_types"][row["id"]] = row
        return ServiceType(**row)

    def update_service_type(self, service_type_id: int, fields: Dict[str, Any]) -> Optional[ServiceType]:
        row = self.data["service_types"].get(service_type_id)
        return ServiceType(**self._apply(row, fields)) if row else None

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    def _billing_items(self, billing_id: int) -> List[BillingItem]:
        return [
            BillingItem(**row) for row in sorted(self.data["billing_items"].values(), key=lambda r: r["id"])
            if row["billing_id"] == billing_id
        ]

    def get_billing(self, enquiry_id: int) -> Optional[BillingDetail]:
        row = self._by_enquiry("billing_details", enquiry_id)
        if not row:
            return None
        return BillingDetail(**row, items=self._billing_items(row["id"]))

    def list_billings(self) -> List[BillingDetail]:
        rows = sorted(
            self.data["billing_details"].values(),
            key=lambda r: (r["generated_at"], r["id"]),
            reverse=True
        )
        return [BillingDetail(**row) for row in rows]

    def insert_billing(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> BillingDetail:
        """
        Raises:
            DuplicateRecordError: invoice_number or enquiry_id already has a billing
        """
        if any(row["invoice_number"] == header["invoice_number"]
               for row in self.data["billing_details"].values()):
            raise DuplicateRecordError(f"Billing already exists: invoice {header['invoice_number']}")
        if self._by_enquiry("billing_details", header["enquiry_id"]):
            raise DuplicateRecordError(f"Billing already exists: enquiry {header['enquiry_id']}")

        row = self._new_row("billing_details", header, ("generated_at",))
        self.data["billing_details"][row["id"]] = row
        for item in items:
            item_row = self._new_row("billing_items", {"billing_id": row["id"], **item}, ())
            self.data["billing_items"][item_row["id"]] = item_row
        return BillingDetail(**row, items=self._billing_items(row["id"]))

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def get_delivery(self, enquiry_id: int) -> Optional[DeliveryDetail]:
        row = self._by_enquiry("delivery_details", enquiry_id)
        return DeliveryDetail(**row) if row else None

    def insert_delivery(self, enquiry_id: int, fields: Dict[str, Any]) -> DeliveryDetail:
        return DeliveryDetail(**self._insert_one_per_enquiry("delivery_details", enquiry_id, fields))

    def update_delivery(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[DeliveryDetail]:
        row = self._by_enquiry("delivery_details", enquiry_id)
        return DeliveryDetail(**self._apply(row, fields)) if row else None


class MemoryStore:
    """Process-local store with copy-on-transaction semantics"""

    def __init__(self):
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = {
            "sequences": {table: 0 for table in TABLES},
            **{table: {} for table in TABLES},
        }

    @contextmanager
    def transaction(self, read_only: bool = False) -> Iterator[MemorySession]:
        """
        Open one transaction

        Transactions are serialised; the working copy replaces the live
        data only if the block raises nothing. A read-only transaction
        reads the live data directly and must not write through the session.
        """
        with self._lock:
            if read_only:
                yield MemorySession(self._data)
                return
            working = copy.deepcopy(self._data)
            yield MemorySession(working)
            self._data = working

    def ping(self) -> bool:
        return True

    def close(self):
        logger.info("Memory store released")
