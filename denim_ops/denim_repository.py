"""
Denim Operations Data Repository

Data access layer - PostgreSQL (asyncpg)
Implements DenimStoreProtocol from protocols.py

Each entity is stored as a JSONB document keyed by id. Inventory items
carry a version column; an update only lands if the version it was read at
is still current.
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from core.postgres_client import PostgresClientWrapper

from .models import (
    Commitment,
    InventoryEvent,
    InventoryItem,
    Order,
    PendingProductionRequest,
    ProductionBatch,
    ProductionRequest,
    WaitlistEntry,
    utc_now,
)
from .protocols import ConcurrentModificationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DOCUMENT_TABLES = (
    "inventory_items",
    "orders",
    "commitments",
    "waitlist_entries",
    "pending_production",
    "production_batches",
    "production_requests",
    "inventory_events",
)


def _filter_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class DenimRepository:
    """Denim operations data repository - PostgreSQL (Async)"""

    def __init__(self, db: PostgresClientWrapper, schema: str = "denim_ops"):
        self.db = db
        self.schema = schema

    async def initialize(self):
        """Create the schema, document tables and order number sequence"""
        async with self.db.transaction():
            await self.db.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
            for table in DOCUMENT_TABLES:
                await self.db.execute(f'''
                    CREATE TABLE IF NOT EXISTS {self.schema}.{table} (
                        id TEXT PRIMARY KEY,
                        seq BIGSERIAL,
                        data JSONB NOT NULL,
                        version INTEGER NOT NULL DEFAULT 1,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                ''')
            await self.db.execute(f"CREATE SEQUENCE IF NOT EXISTS {self.schema}.order_number_seq")
            await self.db.execute(
                f"CREATE INDEX IF NOT EXISTS inventory_items_sku_idx "
                f"ON {self.schema}.inventory_items ((data->>'sku'))"
            )
            await self.db.execute(
                f"CREATE INDEX IF NOT EXISTS inventory_items_status2_idx "
                f"ON {self.schema}.inventory_items ((data->>'status2'))"
            )
        logger.info(f"Denim repository initialized with PostgreSQL schema {self.schema}")

    async def close(self):
        await self.db.close()
        logger.info("Denim repository database connection closed")

    @asynccontextmanager
    async def transaction(self):
        async with self.db.transaction() as conn:
            yield conn

    # ====================
    # Document helpers
    # ====================

    def _where(self, filters: Optional[Dict[str, Any]], start: int = 1) -> Tuple[str, List[Any]]:
        clauses, params = [], []
        for field, value in (filters or {}).items():
            if value is None:
                clauses.append(f"data->>'{field}' IS NULL")
            else:
                params.append(_filter_value(value))
                clauses.append(f"data->>'{field}' = ${start + len(params) - 1}")
        return (f"WHERE {' AND '.join(clauses)}" if clauses else ""), params

    async def _get(self, table: str, model: Type[M], doc_id: str) -> Optional[M]:
        row = await self.db.query_row(f"SELECT data FROM {self.schema}.{table} WHERE id = $1", [doc_id])
        return model.model_validate(row["data"]) if row else None

    async def _list(
        self,
        table: str,
        model: Type[M],
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[M]:
        where, params = self._where(filters)
        query = f"SELECT data FROM {self.schema}.{table} {where} ORDER BY seq"
        if limit is not None:
            params.extend([limit, offset])
            query += f" LIMIT ${len(params) - 1} OFFSET ${len(params)}"
        elif offset:
            params.append(offset)
            query += f" OFFSET ${len(params)}"
        rows = await self.db.query(query, params)
        return [model.model_validate(row["data"]) for row in rows]

    async def _upsert(self, table: str, doc_id: str, doc: BaseModel) -> None:
        await self.db.execute(
            f'''
            INSERT INTO {self.schema}.{table} (id, data)
            VALUES ($1, $2)
            ON CONFLICT (id) DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
            ''',
            [doc_id, doc.model_dump(mode="json")],
        )

    # ====================
    # Inventory items
    # ====================

    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        return await self._get("inventory_items", InventoryItem, item_id)

    async def list_items(
        self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None, offset: int = 0
    ) -> List[InventoryItem]:
        return await self._list("inventory_items", InventoryItem, filters, limit, offset)

    async def create_items(self, items: List[InventoryItem]) -> List[InventoryItem]:
        created = [item.model_copy(update={"version": 1}) for item in items]
        await self.db.execute_many(
            f"INSERT INTO {self.schema}.inventory_items (id, data, version) VALUES ($1, $2, 1)",
            [[item.id, item.model_dump(mode="json")] for item in created],
        )
        return created

    async def save_item(self, item: InventoryItem) -> InventoryItem:
        saved = item.model_copy(update={"version": item.version + 1, "updated_at": utc_now()})
        new_version = await self.db.fetchval(
            f'''
            UPDATE {self.schema}.inventory_items
            SET data = $2, version = $3, updated_at = NOW()
            WHERE id = $1 AND version = $4
            RETURNING version
            ''',
            [item.id, saved.model_dump(mode="json"), saved.version, item.version],
        )
        if new_version is None:
            raise ConcurrentModificationError(
                f"Inventory item {item.id} was modified by another writer (expected version {item.version})",
                entity_id=item.id,
            )
        return saved

    # ====================
    # Orders
    # ====================

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self._get("orders", Order, order_id)

    async def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        return await self._list("orders", Order, filters)

    async def save_order(self, order: Order) -> Order:
        await self._upsert("orders", order.id, order)
        return order

    async def next_order_number(self) -> int:
        return await self.db.fetchval(f"SELECT nextval('{self.schema}.order_number_seq')")

    # ====================
    # Commitment ledger
    # ====================

    async def get_commitment(self, sku: str) -> Optional[Commitment]:
        return await self._get("commitments", Commitment, sku)

    async def save_commitment(self, commitment: Commitment) -> Commitment:
        await self._upsert("commitments", commitment.sku, commitment)
        return commitment

    async def seed_commitment(self, commitment: Commitment) -> None:
        await self.db.execute(
            f'''
            INSERT INTO {self.schema}.commitments (id, data)
            VALUES ($1, $2)
            ON CONFLICT (id) DO NOTHING
            ''',
            [commitment.sku, commitment.model_dump(mode="json")],
        )

    async def adjust_commitment(
        self, sku: str, delta_committed: int, delta_uncommitted: int
    ) -> Optional[Commitment]:
        row = await self.db.query_row(
            f'''
            UPDATE {self.schema}.commitments
            SET data = data || jsonb_build_object(
                    'committed_quantity', (data->>'committed_quantity')::int + $2::int,
                    'uncommitted_quantity', (data->>'uncommitted_quantity')::int + $3::int,
                    'updated_at', to_jsonb(NOW())
                ),
                updated_at = NOW()
            WHERE id = $1
              AND (data->>'committed_quantity')::int + $2::int >= 0
              AND (data->>'uncommitted_quantity')::int + $3::int >= 0
            RETURNING data
            ''',
            [sku, delta_committed, delta_uncommitted],
        )
        return Commitment.model_validate(row["data"]) if row else None

    # ====================
    # Waitlist
    # ====================

    async def list_waitlist(
        self, raw_sku: Optional[str] = None, order_id: Optional[str] = None
    ) -> List[WaitlistEntry]:
        filters = {}
        if raw_sku is not None:
            filters["raw_sku"] = raw_sku
        if order_id is not None:
            filters["order_id"] = order_id
        return await self._list("waitlist_entries", WaitlistEntry, filters)

    async def save_waitlist_entry(self, entry: WaitlistEntry) -> WaitlistEntry:
        await self._upsert("waitlist_entries", entry.id, entry)
        return entry

    async def delete_waitlist_entry(self, entry_id: str) -> bool:
        status = await self.db.execute(f"DELETE FROM {self.schema}.waitlist_entries WHERE id = $1", [entry_id])
        return status.endswith(" 1")

    # ====================
    # Production
    # ====================

    async def get_pending_production(self, request_id: str) -> Optional[PendingProductionRequest]:
        return await self._get("pending_production", PendingProductionRequest, request_id)

    async def list_pending_production(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[PendingProductionRequest]:
        return await self._list("pending_production", PendingProductionRequest, filters)

    async def save_pending_production(self, request: PendingProductionRequest) -> PendingProductionRequest:
        await self._upsert("pending_production", request.id, request)
        return request

    async def get_batch(self, batch_id: str) -> Optional[ProductionBatch]:
        return await self._get("production_batches", ProductionBatch, batch_id)

    async def list_batches(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductionBatch]:
        return await self._list("production_batches", ProductionBatch, filters)

    async def save_batch(self, batch: ProductionBatch) -> ProductionBatch:
        await self._upsert("production_batches", batch.id, batch)
        return batch

    # ====================
    # Requests
    # ====================

    async def get_request(self, request_id: str) -> Optional[ProductionRequest]:
        return await self._get("production_requests", ProductionRequest, request_id)

    async def list_requests(self, filters: Optional[Dict[str, Any]] = None) -> List[ProductionRequest]:
        return await self._list("production_requests", ProductionRequest, filters)

    async def save_request(self, request: ProductionRequest) -> ProductionRequest:
        await self._upsert("production_requests", request.id, request)
        return request

    # ====================
    # Events
    # ====================

    async def save_event(self, event: InventoryEvent) -> InventoryEvent:
        await self._upsert("inventory_events", event.id, event)
        return event

    async def list_events(self, item_id: str) -> List[InventoryEvent]:
        return await self._list("inventory_events", InventoryEvent, {"item_id": item_id})
