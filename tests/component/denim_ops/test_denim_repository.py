"""
Denim Repository - Component Tests

SQL issued by DenimRepository against a mocked asyncpg wrapper.
"""
import pytest

from denim_ops.denim_repository import DOCUMENT_TABLES, DenimRepository
from denim_ops.models import Commitment, InventoryItem, Status1, Status2, WaitlistEntry
from denim_ops.protocols import ConcurrentModificationError

pytestmark = [pytest.mark.component]


@pytest.fixture
def repository(mock_db):
    return DenimRepository(mock_db, schema="denim_test")


def _item(**overrides):
    fields = {"sku": "ST-32-S-30-STA", "status1": Status1.STOCK, "status2": Status2.UNCOMMITTED}
    fields.update(overrides)
    return InventoryItem(**fields)


class TestInitialize:

    async def test_creates_schema_tables_and_sequence(self, repository, mock_db):
        await repository.initialize()

        assert mock_db.transactions == 1
        mock_db.assert_query_executed("CREATE SCHEMA IF NOT EXISTS denim_test")
        for table in DOCUMENT_TABLES:
            mock_db.assert_query_executed(f"denim_test.{table} (")
        mock_db.assert_query_executed("CREATE SEQUENCE IF NOT EXISTS denim_test.order_number_seq")
        mock_db.assert_query_executed("(data->>'sku')")

    async def test_close(self, repository, mock_db):
        await repository.close()
        assert mock_db.closed is True


class TestItems:

    async def test_get_item_validates_row(self, repository, mock_db):
        item = _item()
        mock_db.set_row_response({"data": item.model_dump(mode="json")})

        loaded = await repository.get_item(item.id)

        assert loaded == item
        _, sql, params = mock_db.get_last_query()
        assert "FROM denim_test.inventory_items WHERE id = $1" in sql
        assert params == [item.id]

    async def test_get_missing_item(self, repository):
        assert await repository.get_item("item_missing") is None

    async def test_list_filters_use_enum_values(self, repository, mock_db):
        await repository.list_items({"sku": "ST-32-S-30-STA", "status2": Status2.UNCOMMITTED, "order_id": None})

        _, sql, params = mock_db.get_last_query()
        assert "data->>'sku' = $1" in sql
        assert "data->>'status2' = $2" in sql
        assert "data->>'order_id' IS NULL" in sql
        assert sql.rstrip().endswith("ORDER BY seq")
        assert params == ["ST-32-S-30-STA", "UNCOMMITTED"]

    async def test_list_with_limit_and_offset(self, repository, mock_db):
        await repository.list_items({"sku": "ST-32-S-30-STA"}, limit=10, offset=20)

        _, sql, params = mock_db.get_last_query()
        assert "LIMIT $2 OFFSET $3" in sql
        assert params == ["ST-32-S-30-STA", 10, 20]

    async def test_create_items_start_at_version_one(self, repository, mock_db):
        created = await repository.create_items([_item(), _item()])

        assert [item.version for item in created] == [1, 1]
        method, sql, params_list = mock_db.get_last_query()
        assert method == "execute_many"
        assert "INSERT INTO denim_test.inventory_items" in sql
        assert len(params_list) == 2

    async def test_save_item_bumps_version(self, repository, mock_db):
        item = _item(version=3)
        mock_db.set_fetchval_response(4)

        saved = await repository.save_item(item)

        assert saved.version == 4
        _, sql, params = mock_db.get_last_query()
        assert "WHERE id = $1 AND version = $4" in sql
        assert params[0] == item.id
        assert params[2:] == [4, 3]

    async def test_save_item_version_conflict(self, repository, mock_db):
        item = _item(version=2)
        mock_db.set_fetchval_response(None)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await repository.save_item(item)

        assert exc_info.value.entity_id == item.id


class TestDocuments:

    async def test_save_waitlist_entry_upserts(self, repository, mock_db):
        entry = WaitlistEntry(order_id="ord_1", line_index=0, sku="ST-32-S-30-STA", raw_sku="ST-32-S-36-RAW", quantity=1)

        await repository.save_waitlist_entry(entry)

        _, sql, params = mock_db.get_last_query()
        assert "ON CONFLICT (id) DO UPDATE" in sql
        assert params[0] == entry.id
        assert params[1]["raw_sku"] == "ST-32-S-36-RAW"

    async def test_list_waitlist_by_raw_sku(self, repository, mock_db):
        entry = WaitlistEntry(order_id="ord_1", line_index=0, sku="ST-32-S-30-STA", raw_sku="ST-32-S-36-RAW", quantity=1)
        mock_db.set_rows_response([{"data": entry.model_dump(mode="json")}])

        entries = await repository.list_waitlist(raw_sku="ST-32-S-36-RAW")

        assert [e.id for e in entries] == [entry.id]
        _, sql, params = mock_db.get_last_query()
        assert "denim_test.waitlist_entries" in sql
        assert params == ["ST-32-S-36-RAW"]

    async def test_delete_reports_row_count(self, repository, mock_db):
        mock_db.set_execute_response("DELETE 1")
        assert await repository.delete_waitlist_entry("wl_1") is True

        mock_db.set_execute_response("DELETE 0")
        assert await repository.delete_waitlist_entry("wl_1") is False

    async def test_next_order_number(self, repository, mock_db):
        mock_db.set_fetchval_response(1001)

        assert await repository.next_order_number() == 1001
        mock_db.assert_query_executed("nextval('denim_test.order_number_seq')", method="fetchval")

    async def test_commitment_keyed_by_sku(self, repository, mock_db):
        await repository.get_commitment("ST-32-S-30-STA")

        _, sql, params = mock_db.get_last_query()
        assert "denim_test.commitments" in sql
        assert params == ["ST-32-S-30-STA"]

    async def test_seed_commitment_keeps_existing_entry(self, repository, mock_db):
        await repository.seed_commitment(Commitment(sku="ST-32-S-30-STA", uncommitted_quantity=2))

        _, sql, params = mock_db.get_last_query()
        assert "ON CONFLICT (id) DO NOTHING" in sql
        assert params[0] == "ST-32-S-30-STA"
        assert params[1]["uncommitted_quantity"] == 2

    async def test_adjust_commitment_is_a_single_guarded_update(self, repository, mock_db):
        updated = Commitment(sku="ST-32-S-30-STA", committed_quantity=1, uncommitted_quantity=1)
        mock_db.set_row_response({"data": updated.model_dump(mode="json")})

        saved = await repository.adjust_commitment("ST-32-S-30-STA", 1, -1)

        assert (saved.committed_quantity, saved.uncommitted_quantity) == (1, 1)
        method, sql, params = mock_db.get_last_query()
        assert method == "query_row"
        assert "UPDATE denim_test.commitments" in sql
        assert "(data->>'uncommitted_quantity')::int + $3::int >= 0" in sql
        assert params == ["ST-32-S-30-STA", 1, -1]

    async def test_adjust_commitment_rejected_by_guard(self, repository, mock_db):
        mock_db.set_row_response(None)
        assert await repository.adjust_commitment("ST-32-S-30-STA", 0, -5) is None

    async def test_database_errors_propagate(self, repository, mock_db):
        mock_db.set_error(ConnectionError("pool closed"))

        with pytest.raises(ConnectionError):
            await repository.list_orders()
