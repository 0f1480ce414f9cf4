"""
PostgreSQL store

Every workflow transition runs inside ``PostgresStore.transaction()``: one
pooled connection, one cursor, committed when the block exits cleanly and
rolled back otherwise.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from psycopg2 import errors as pg_errors
from psycopg2 import sql
from psycopg2.extras import Json, RealDictCursor

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
from cobbler.utils.database import Database, db
from cobbler.utils.errors import DuplicateRecordError

logger = logging.getLogger(__name__)

ENQUIRY_SEARCH_COLUMNS = ("customer_name", "phone", "address", "message")


def _prepare(value: Any) -> Any:
    """Adapt a Python value for psycopg2"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return Json(value)
    return value


def escape_like(term: str) -> str:
    """Make ``%`` and ``_`` match literally in a LIKE pattern (escape char ``\\``)"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresSession:
    """Typed reads and writes bound to a single transaction cursor"""

    def __init__(self, cursor):
        self.cursor = cursor

    # ------------------------------------------------------------------
    # SQL helpers
    # ------------------------------------------------------------------

    def _fetch_one(self, query, params: Tuple = ()) -> Optional[Dict[str, Any]]:
        self.cursor.execute(query, params)
        row = self.cursor.fetchone()
        return dict(row) if row else None

    def _fetch_all(self, query, params: Tuple = ()) -> List[Dict[str, Any]]:
        self.cursor.execute(query, params)
        return [dict(row) for row in self.cursor.fetchall()]

    def _insert(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        columns = list(fields)
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *").format(
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            values=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        return self._fetch_one(query, tuple(_prepare(fields[c]) for c in columns))

    def _update(
        self,
        table: str,
        key_column: str,
        key: int,
        fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        assignments = [
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder()) for c in fields
        ]
        assignments.append(sql.SQL("updated_at = CURRENT_TIMESTAMP"))
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE {key} = %s RETURNING *").format(
            table=sql.Identifier(table),
            assignments=sql.SQL(", ").join(assignments),
            key=sql.Identifier(key_column),
        )
        params = tuple(_prepare(v) for v in fields.values()) + (key,)
        return self._fetch_one(query, params)

    # ------------------------------------------------------------------
    # Enquiries
    # ------------------------------------------------------------------

    def insert_enquiry(self, fields: Dict[str, Any]) -> Enquiry:
        return Enquiry(**self._insert("enquiries", fields))

    def get_enquiry(self, enquiry_id: int, for_update: bool = False) -> Optional[Enquiry]:
        query = "SELECT * FROM enquiries WHERE id = %s"
        if for_update:
            query += " FOR UPDATE"
        row = self._fetch_one(query, (enquiry_id,))
        return Enquiry(**row) if row else None

    def update_enquiry(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[Enquiry]:
        row = self._update("enquiries", "id", enquiry_id, fields)
        return Enquiry(**row) if row else None

    def delete_enquiry(self, enquiry_id: int) -> bool:
        self.cursor.execute("DELETE FROM enquiries WHERE id = %s", (enquiry_id,))
        return self.cursor.rowcount > 0

    def list_enquiries(
        self,
        status: Optional[str] = None,
        stage: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> Tuple[List[Enquiry], int]:
        """Filter enquiries, newest first; returns the page and the total match count"""
        conditions = []
        params: List[Any] = []
        if status:
            conditions.append("status = %s")
            params.append(_prepare(status))
        if stage:
            conditions.append("current_stage = %s")
            params.append(_prepare(stage))
        if search:
            pattern = f"%{escape_like(search)}%"
            conditions.append(
                "(" + " OR ".join(f"{column} ILIKE %s ESCAPE '\\'" for column in ENQUIRY_SEARCH_COLUMNS) + ")"
            )
            params.extend([pattern] * len(ENQUIRY_SEARCH_COLUMNS))
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        count = self._fetch_one(f"SELECT COUNT(*) AS total FROM enquiries {where}", tuple(params))
        total = count["total"] if count else 0

        query = f"SELECT * FROM enquiries {where} ORDER BY created_at DESC, id DESC"
        page_params = list(params)
        if limit is not None:
            query += " LIMIT %s OFFSET %s"
            page_params.extend([limit, offset])
        rows = self._fetch_all(query, tuple(page_params))
        return [Enquiry(**row) for row in rows], total

    # ------------------------------------------------------------------
    # Pickup
    # ------------------------------------------------------------------

    def get_pickup(self, enquiry_id: int) -> Optional[PickupDetail]:
        row = self._fetch_one("SELECT * FROM pickup_details WHERE enquiry_id = %s", (enquiry_id,))
        return PickupDetail(**row) if row else None

    def insert_pickup(self, enquiry_id: int, fields: Dict[str, Any]) -> PickupDetail:
        return PickupDetail(**self._insert("pickup_details", {"enquiry_id": enquiry_id, **fields}))

    def update_pickup(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[PickupDetail]:
        row = self._update("pickup_details", "enquiry_id", enquiry_id, fields)
        return PickupDetail(**row) if row else None

    # ------------------------------------------------------------------
    # Photos
    # ------------------------------------------------------------------

    def insert_photo(self, fields: Dict[str, Any]) -> Photo:
        return Photo(**self._insert("photos", fields))

    def get_photo(self, photo_id: int) -> Optional[Photo]:
        row = self._fetch_one("SELECT * FROM photos WHERE id = %s", (photo_id,))
        return Photo(**row) if row else None

    def list_photos(self, enquiry_id: int, stage: Optional[str] = None) -> List[Photo]:
        query = "SELECT * FROM photos WHERE enquiry_id = %s"
        params: List[Any] = [enquiry_id]
        if stage:
            query += " AND stage = %s"
            params.append(_prepare(stage))
        query += " ORDER BY created_at, id"
        return [Photo(**row) for row in self._fetch_all(query, tuple(params))]

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    def get_service_detail(self, enquiry_id: int) -> Optional[ServiceDetail]:
        row = self._fetch_one("SELECT * FROM service_details WHERE enquiry_id = %s", (enquiry_id,))
        return ServiceDetail(**row) if row else None

    def insert_service_detail(self, enquiry_id: int, fields: Dict[str, Any]) -> ServiceDetail:
        return ServiceDetail(**self._insert("service_details", {"enquiry_id": enquiry_id, **fields}))

    def update_service_detail(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[ServiceDetail]:
        row = self._update("service_details", "enquiry_id", enquiry_id, fields)
        return ServiceDetail(**row) if row else None

    def list_service_types(self, enquiry_id: int) -> List[ServiceType]:
        rows = self._fetch_all(
            "SELECT * FROM service_types WHERE enquiry_id = %s ORDER BY created_at, id",
            (enquiry_id,)
        )
        return [ServiceType(**row) for row in rows]

    def get_service_type(self, service_type_id: int) -> Optional[ServiceType]:
        row = self._fetch_one("SELECT * FROM service_types WHERE id = %s", (service_type_id,))
        return ServiceType(**row) if row else None

    def insert_service_type(self, enquiry_id: int, fields: Dict[str, Any]) -> ServiceType:
        return ServiceType(**self._insert("service_types", {"enquiry_id": enquiry_id, **fields}))

    def update_service_type(self, service_type_id: int, fields: Dict[str, Any]) -> Optional[ServiceType]:
        row = self._update("service_types", "id", service_type_id, fields)
        return ServiceType(**row) if row else None

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    def get_billing(self, enquiry_id: int) -> Optional[BillingDetail]:
        header = self._fetch_one("SELECT * FROM billing_details WHERE enquiry_id = %s", (enquiry_id,))
        if not header:
            return None
        items = self._fetch_all(
            "SELECT * FROM billing_items WHERE billing_id = %s ORDER BY id",
            (header["id"],)
        )
        return BillingDetail(**header, items=[BillingItem(**item) for item in items])

    def list_billings(self) -> List[BillingDetail]:
        """Invoice headers without their lines"""
        rows = self._fetch_all("SELECT * FROM billing_details ORDER BY generated_at DESC, id DESC")
        return [BillingDetail(**row) for row in rows]

    def insert_billing(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> BillingDetail:
        """
        Insert an invoice header and its lines

        The header insert runs under a savepoint so that a unique violation
        (invoice number or enquiry) leaves the surrounding transaction usable.

        Raises:
            DuplicateRecordError: invoice_number or enquiry_id already has a billing
        """
        self.cursor.execute("SAVEPOINT insert_billing")
        try:
            row = self._insert("billing_details", header)
        except pg_errors.UniqueViolation as e:
            self.cursor.execute("ROLLBACK TO SAVEPOINT insert_billing")
            raise DuplicateRecordError(f"Billing already exists: {e.diag.constraint_name}") from e
        self.cursor.execute("RELEASE SAVEPOINT insert_billing")

        saved_items = [
            BillingItem(**self._insert("billing_items", {"billing_id": row["id"], **item}))
            for item in items
        ]
        return BillingDetail(**row, items=saved_items)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def get_delivery(self, enquiry_id: int) -> Optional[DeliveryDetail]:
        row = self._fetch_one("SELECT * FROM delivery_details WHERE enquiry_id = %s", (enquiry_id,))
        return DeliveryDetail(**row) if row else None

    def insert_delivery(self, enquiry_id: int, fields: Dict[str, Any]) -> DeliveryDetail:
        return DeliveryDetail(**self._insert("delivery_details", {"enquiry_id": enquiry_id, **fields}))

    def update_delivery(self, enquiry_id: int, fields: Dict[str, Any]) -> Optional[DeliveryDetail]:
        row = self._update("delivery_details", "enquiry_id", enquiry_id, fields)
        return DeliveryDetail(**row) if row else None


class PostgresStore:
    """Store backed by the pooled PostgreSQL connection"""

    def __init__(self, database: Database = db):
        self.database = database

    @contextmanager
    def transaction(self, read_only: bool = False) -> Iterator[PostgresSession]:
        """
        Open one transaction; ``read_only`` makes the server reject writes

        Usage:
            with store.transaction() as session:
                enquiry = session.get_enquiry(42, for_update=True)
                session.update_enquiry(42, {"status": "contacted"})
        """
        with self.database.transaction() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            try:
                if read_only:
                    cursor.execute("SET TRANSACTION READ ONLY")
                yield PostgresSession(cursor)
            finally:
                cursor.close()

    def ping(self) -> bool:
        return self.database.ping()

    def close(self):
        self.database.close()

