"""
Unit Tests for the partition stores

Tests cover:
1. JSON file persistence across service instances
2. Read and write failures
3. Per-partition locking under concurrent orders
"""

import json
import threading

import pytest
from decimal import Decimal

from menu_ledger.models import Menu
from menu_ledger.service import LedgerService, StorageError
from menu_ledger.storage import InMemoryStorage, JsonFileStorage


class TestInMemoryStorage:

    def test_absent_partition_loads_as_none(self):
        assert InMemoryStorage().load("transactions") is None

    def test_loaded_records_are_snapshots(self):
        storage = InMemoryStorage(seed={"balances:general": {"alice": 1}})
        snapshot = storage.load("balances:general")
        snapshot["alice"] = 100

        assert storage.load("balances:general") == {"alice": 1}


class TestJsonFileStorage:

    def test_ledger_survives_restart(self, tmp_path):
        """Test that a second service over the same directory sees the first one's writes."""
        first = LedgerService(JsonFileStorage(str(tmp_path)))
        first.set_balance(Menu.GENERAL, "alice", 10)
        first.upsert_product(Menu.GENERAL, "soda", Decimal("2.50"))
        order = first.place_order(Menu.GENERAL, "alice", {"soda": 2}).transaction

        second = LedgerService(JsonFileStorage(str(tmp_path)))
        assert second.get_balance(Menu.GENERAL, "alice") == Decimal("5")
        assert second.get_catalog(Menu.GENERAL)["soda"].sold == 2
        assert second.get_transaction(order.id).total == Decimal("5")

        second.refund(order.id)
        assert first.get_balance(Menu.GENERAL, "alice") == Decimal("10")

    def test_files_hold_plain_json_numbers(self, tmp_path):
        service = LedgerService(JsonFileStorage(str(tmp_path)))
        service.set_balance(Menu.TEAM, "bob", 7.25)

        with open(tmp_path / "balances_team.json", encoding="utf-8") as f:
            assert json.load(f) == {"bob": 7.25}
        assert not list(tmp_path.glob("*.tmp"))

    def test_empty_directory_reads_as_empty_ledger(self, tmp_path):
        service = LedgerService(JsonFileStorage(str(tmp_path / "fresh")))

        assert service.list_transactions() == []
        assert service.list_balances(Menu.GENERAL) == {}
        assert service.get_catalog(Menu.TEAM) == {}

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        (tmp_path / "catalog_general.json").write_text("{not json", encoding="utf-8")
        service = LedgerService(JsonFileStorage(str(tmp_path)))

        with pytest.raises(StorageError):
            service.get_catalog(Menu.GENERAL)

    def test_unwritable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        storage = JsonFileStorage(str(blocker / "data"))

        with pytest.raises(StorageError):
            storage.save("transactions", [])


class TestLocking:

    def test_concurrent_orders_do_not_lose_writes(self, tmp_path):
        service = LedgerService(JsonFileStorage(str(tmp_path)))
        service.set_balance(Menu.GENERAL, "alice", 100)
        service.upsert_product(Menu.GENERAL, "soda", 2)

        def buy():
            service.place_order(Menu.GENERAL, "alice", {"soda": 1})

        threads = [threading.Thread(target=buy) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert service.get_balance(Menu.GENERAL, "alice") == Decimal("60")
        assert service.get_catalog(Menu.GENERAL)["soda"].sold == 20
        assert len(service.list_transactions()) == 20

    def test_locked_is_reentrant(self):
        storage = InMemoryStorage()
        with storage.locked("transactions", "balances:general"):
            with storage.locked("transactions"):
                storage.save("transactions", [])

        assert storage.load("transactions") == []
