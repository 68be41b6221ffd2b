import json
import os
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("API_KEY", "")

from assetdesk.clients.inventory import InventoryClient, extract_items
from assetdesk.core.errors import InventoryApiError
from assetdesk.schemas.asset import AssetPatch, AssetPayload


def _client(handler, token="secret"):
    return InventoryClient(
        "http://inventory.test/api/",
        token=token,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def test_extract_items_accepts_every_list_shape():
    rows = [{"id": 1}, "junk"]

    assert extract_items(rows) == [{"id": 1}]
    assert extract_items({"data": rows}) == [{"id": 1}]
    assert extract_items({"items": rows, "total": 1}) == [{"id": 1}]
    assert extract_items({"message": "nope"}) == []
    assert extract_items(None) == []


def test_list_assets_sends_paging_filters_and_token():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={"data": [{"id": 1, "assetCode": "MOU-1", "assetType": "mouse", "extra": "x"}], "total": 9},
        )

    with _client(handler) as client:
        page = client.list_assets(filters={"assetType": "mouse", "status": ""}, page=2, page_size=50)

    assert seen["url"].path == "/api/assets"
    assert dict(seen["url"].params) == {"page": "2", "limit": "50", "assetType": "mouse"}
    assert seen["auth"] == "Bearer secret"
    assert page.total == 9
    assert page.items[0].asset_code == "MOU-1"


def test_list_assets_accepts_a_bare_list():
    def handler(request):
        return httpx.Response(200, json=[{"id": "A"}, {"id": "B"}])

    page = _client(handler, token="").list_assets()

    assert [asset.id for asset in page.items] == ["A", "B"]
    assert page.total == 2


def test_list_assets_keeps_unknown_statuses_and_skips_malformed_records():
    rows = [
        {"id": 1, "assetType": "mouse", "status": "available"},
        {"id": 2, "assetType": "laptop", "status": "loaned"},
        {"assetType": "hub"},
        {"id": 4, "assetType": "cable", "attributesJson": "not-a-dict"},
    ]

    page = _client(lambda request: httpx.Response(200, json=rows)).list_assets()

    assert [asset.id for asset in page.items] == [1, 2]
    assert page.items[1].status == "loaned"
    assert page.items[1].is_available is False


def test_unreadable_single_record_is_an_inventory_error():
    client = _client(lambda request: httpx.Response(200, json={"assetCode": "NO-ID"}))

    with pytest.raises(InventoryApiError) as excinfo:
        client.get_asset(5)

    assert excinfo.value.status_code == 502


def test_check_phone_unique_passes_the_normalized_number():
    def handler(request):
        assert request.url.path == "/api/assets/check-phone"
        assert request.url.params["phone"] == "+593991234567"
        return httpx.Response(200, json={"exists": True, "deviceId": 12})

    result = _client(handler).check_phone_unique("+593991234567")

    assert result.exists is True
    assert result.device_id == 12


def test_create_and_update_send_camel_case_bodies():
    bodies = []

    def handler(request):
        bodies.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"id": 7, "assetCode": "LAPT - AAAAA", "assetType": "laptop"})

    client = _client(handler)
    client.create_asset(
        AssetPayload(asset_code="LAPT - AAAAA", asset_type="laptop", attributes_json={"hasMouse": False})
    )
    client.update_asset(7, AssetPatch(serial_number="SN1"))

    assert bodies[0] == (
        "POST",
        "/api/assets",
        {
            "assetCode": "LAPT - AAAAA",
            "assetType": "laptop",
            "status": "available",
            "attributesJson": {"hasMouse": False},
        },
    )
    assert bodies[1] == ("PUT", "/api/assets/7", {"serialNumber": "SN1"})


def test_list_assignments_filters_by_asset():
    def handler(request):
        assert request.url.params["assetId"] == "4"
        return httpx.Response(200, json=[{"id": 1, "assetId": 4, "assignmentDate": "2024-05-01T10:30:00Z"}])

    assignments = _client(handler).list_assignments(4)

    assert assignments[0].is_open is True


def test_error_responses_become_inventory_errors():
    def handler(request):
        return httpx.Response(400, json={"message": ["assetCode must be unique", "bad serial"]})

    with pytest.raises(InventoryApiError) as excinfo:
        _client(handler).get_asset(3)

    assert excinfo.value.message == "assetCode must be unique; bad serial"
    assert excinfo.value.upstream_status == 400
    assert excinfo.value.status_code == 400


def test_server_errors_map_to_bad_gateway():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    with pytest.raises(InventoryApiError) as excinfo:
        _client(handler).list_assets()

    assert excinfo.value.message == "Error 503"
    assert excinfo.value.status_code == 502


def test_transport_failures_become_inventory_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(InventoryApiError) as excinfo:
        _client(handler).get_asset(1)

    assert "refused" in excinfo.value.message
    assert excinfo.value.upstream_status is None
