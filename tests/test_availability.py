import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("API_KEY", "")

from assetdesk.core.errors import InventoryApiError
from assetdesk.services.availability import AccessoryPool, option_label
from inventory_fakes import FakeInventory, make_asset


def _inventory():
    return FakeInventory(
        [
            make_asset("M1", "mouse", asset_code="MOU-1", brand="Logitech", model="M90"),
            make_asset("M2", "mouse", asset_code="MOU-2", status="maintenance"),
            make_asset("M3", "mouse", asset_code="MOU-3", assigned_person_id=9),
            make_asset("K1", "teclado", asset_code="TEC-1", serial_number="SN-778"),
            make_asset("L1", "laptop", asset_code="LAPT - AAAAA"),
        ]
    )


def test_refresh_keeps_only_available_unassigned_records_per_category():
    inventory = _inventory()
    pool = AccessoryPool(inventory, page_size=2000)

    assert pool.refresh() is True

    assert [asset.id for asset in pool.candidates("mouse")] == ["M1"]
    assert [asset.id for asset in pool.candidates("teclado")] == ["K1"]
    assert pool.counts()["monitor"] == 0
    assert "laptop" not in pool.counts()
    assert inventory.calls == [("list_assets", {}, 1, 2000)]


def test_failed_refresh_keeps_previous_snapshot():
    inventory = _inventory()
    pool = AccessoryPool(inventory)
    pool.refresh()
    inventory.list_error = InventoryApiError("down", upstream_status=503)

    assert pool.refresh() is False

    assert pool.contains("mouse", "M1")
    assert pool.last_error == "down"


def test_refresh_replaces_rather_than_patches():
    inventory = _inventory()
    pool = AccessoryPool(inventory)
    pool.refresh()
    del inventory.assets["M1"]

    pool.refresh()

    assert pool.candidates("mouse") == []


def test_options_search_label_and_serial():
    pool = AccessoryPool(_inventory())
    pool.refresh()

    assert pool.options("mouse") == [{"label": "MOU-1 - Logitech M90", "value": "M1"}]
    assert pool.options("mouse", "logi") == [{"label": "MOU-1 - Logitech M90", "value": "M1"}]
    assert pool.options("mouse", "dell") == []
    assert pool.options("teclado", "sn-778")[0]["value"] == "K1"


def test_options_skip_excluded_ids():
    pool = AccessoryPool(_inventory())
    pool.refresh()

    assert pool.options("mouse", exclude=["M1"]) == []


def test_option_label_falls_back_to_id():
    assert option_label(make_asset(5, "hub", asset_code="")) == "5 -"
