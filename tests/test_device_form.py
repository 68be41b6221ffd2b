import os
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("API_KEY", "")

from assetdesk.clients.inventory import InventoryClient
from assetdesk.core.asset_codes import is_valid_code_format
from assetdesk.core.config import get_settings
from assetdesk.core.errors import (
    ACTIVE_ASSIGNMENT_MESSAGE,
    DUPLICATE_PHONE_MESSAGE,
    AccessoryLinkError,
    AttributeValidationError,
    DuplicatePhoneNumberError,
    FormStateError,
    InventoryApiError,
)
from assetdesk.schemas.asset import AssetPatch, Assignment
from assetdesk.services.device_form import DeviceForm
from inventory_fakes import FakeInventory, make_asset


def _open_laptop(inventory):
    form = DeviceForm(inventory, mode="create").open()
    form.set_field("asset_code", "LAPT - ABCDE")
    return form


# ---------- end-to-end flows ----------


def test_create_laptop_linking_an_existing_mouse():
    inventory = FakeInventory([make_asset("M1", "mouse")])
    form = _open_laptop(inventory)

    form.check_accessory("mouse", True)
    form.choose_existing_accessory("mouse")
    form.select_accessory("mouse", "M1")
    saved = form.submit()

    payload = inventory.created[0]
    assert payload.attributes_json["selectedMouseId"] == "M1"
    assert payload.attributes_json["hasMouseRadio"] == "no"
    assert payload.asset_type == "laptop"
    assert form.saved is saved
    assert form.is_open is False


def test_create_laptop_with_a_new_mouse_from_the_nested_form():
    inventory = FakeInventory(next_ids=["M2", "L9"])
    form = _open_laptop(inventory)

    form.check_accessory("mouse", True)
    nested = form.choose_new_accessory("mouse")
    assert nested.fixed_type == "mouse"
    assert nested.values.asset_type == "mouse"
    assert nested.values.asset_code == ""

    nested.set_field("asset_code", "MOU-0042")
    created = form.submit_nested()

    assert created.id == "M2"
    assert form.values.attributes["selectedMouseId"] == "M2"
    assert form.nested is None
    assert nested.is_open is False
    assert not form.pool.contains("mouse", "M2")
    form.pool.refresh()
    assert not form.pool.contains("mouse", "M2")
    assert form.accessory_options("mouse") == []

    form.submit()
    parent_payload = inventory.created[1]
    assert parent_payload.attributes_json["hasMouseRadio"] == "yes"
    assert parent_payload.attributes_json["selectedMouseId"] == "M2"


@pytest.mark.parametrize("check_fails", [False, True], ids=["uniqueness-endpoint", "fallback-scan"])
def test_duplicate_phone_blocks_save_of_another_smartphone(check_fails):
    first = make_asset(
        1, "smartphone", attributes_json={"hasChip": True, "chipNumber": "+593 99 123 4567", "imeis": ["1"]}
    )
    second = make_asset(2, "smartphone", asset_code="CELU - BBBBB", attributes_json={"imeis": ["2"]})
    inventory = FakeInventory([first, second])
    if check_fails:
        inventory.phone_check_error = InventoryApiError("Not Found", upstream_status=404)

    form = DeviceForm(inventory, mode="edit", device=second).open()
    form.set_attribute("hasChip", True)
    form.set_attribute("chipNumber", "+593-99-123-4567")

    with pytest.raises(DuplicatePhoneNumberError) as excinfo:
        form.submit()

    assert excinfo.value.conflicting_id == 1
    assert form.error == DUPLICATE_PHONE_MESSAGE
    assert form.is_open is True
    assert form.values.attributes["chipNumber"] == "+593-99-123-4567"
    assert inventory.updated == []
    assert ("check_phone_unique", "+593991234567") in inventory.calls
    scan = ("list_assets", {}, 1, get_settings().PHONE_SCAN_PAGE_SIZE)
    assert (scan in inventory.calls) is check_fails


def test_editing_a_phone_keeps_its_own_number():
    phone = make_asset(1, "smartphone", attributes_json={"hasChip": True, "chipNumber": "+593991234567"})
    inventory = FakeInventory([phone])

    form = DeviceForm(inventory, mode="edit", device=phone).open()
    form.set_field("notes", "pantalla nueva")
    form.submit()

    asset_id, patch = inventory.updated[0]
    assert asset_id == 1
    assert isinstance(patch, AssetPatch)
    assert patch.notes == "pantalla nueva"


def test_type_changes_apply_and_clear_code_prefix():
    form = DeviceForm(FakeInventory(), mode="create").open()
    assert form.values.asset_code == "LAPT - "

    form.set_asset_type("cargador-laptop")
    assert form.values.asset_code == "CARGL - "

    form.set_field("asset_code", "CARGL - X1")
    form.set_asset_type("mouse")
    assert form.values.asset_code == ""

    form.set_field("asset_code", "MY-CODE")
    form.set_asset_type("smartphone")
    assert form.values.asset_code == "CELU - "
    assert form.values.attributes["imeis"] == [""]


# ---------- form rules ----------


def test_edit_mode_keeps_code_on_type_change():
    laptop = make_asset(3, "laptop", asset_code="INV-003")
    form = DeviceForm(FakeInventory([laptop]), mode="edit", device=laptop).open()

    form.set_asset_type("server")

    assert form.values.asset_code == "INV-003"


def test_fixed_type_form_refuses_other_types():
    form = DeviceForm(FakeInventory(), mode="create", fixed_type="hub").open()

    assert form.values.asset_type == "hub"
    with pytest.raises(FormStateError):
        form.set_asset_type("laptop")


def test_active_assignment_locks_status_and_fills_delivery_date():
    device = make_asset(2, "laptop", status="assigned", assigned_person_id=5)
    inventory = FakeInventory([device])
    inventory.assignments = [
        Assignment(id=1, asset_id=2, assignment_date="2024-01-10T08:00:00Z", return_date="2024-02-01"),
        Assignment(id=2, asset_id=2, assignment_date="2024-05-01T10:30:00Z"),
    ]
    form = DeviceForm(inventory, mode="edit", device=device).open()

    assert form.has_active_assignment is True
    assert form.delivery_date_auto == "2024-05-01T10:30"
    with pytest.raises(FormStateError) as excinfo:
        form.set_field("status", "maintenance")
    assert excinfo.value.message == ACTIVE_ASSIGNMENT_MESSAGE

    patch = form.compose_payload()
    assert patch.status is None
    assert patch.assigned_person_id is None
    assert patch.delivery_date == "2024-05-01T10:30"


def test_returned_assignment_leaves_delivery_date_manual():
    device = make_asset(2, "laptop")
    inventory = FakeInventory([device])
    inventory.assignments = [
        Assignment(id=1, asset_id=2, assignment_date="2024-05-01T10:30:00Z", return_date="2024-06-01"),
    ]
    form = DeviceForm(inventory, mode="edit", device=device).open()

    assert form.delivery_date_auto == ""
    assert form.has_active_assignment is False
    form.set_field("status", "maintenance")
    assert form.compose_payload().status == "maintenance"


@pytest.mark.parametrize("status", ["assigned", "loaned"])
def test_server_derived_status_is_not_sent_back(status):
    device = make_asset(4, "laptop", status=status)
    form = DeviceForm(FakeInventory([device]), mode="edit", device=device).open()

    assert form.has_active_assignment is False
    assert form.values.status == status

    patch = form.compose_payload()
    assert patch.status is None
    assert "status" not in patch.to_wire()


def test_form_opens_when_the_inventory_lists_an_unexpected_status():
    rows = [
        {"id": "M1", "assetCode": "MOU-1", "assetType": "mouse", "status": "available"},
        {"id": "L7", "assetCode": "LAPT - QWERT", "assetType": "laptop", "status": "loaned"},
    ]
    client = InventoryClient(
        "http://inventory.test", token="", transport=httpx.MockTransport(lambda request: httpx.Response(200, json=rows))
    )

    form = DeviceForm(client, mode="create").open()

    assert form.pool.refreshed is True
    assert form.pool.last_error is None
    assert [option["value"] for option in form.accessory_options("mouse")] == ["M1"]


def test_status_must_be_settable():
    form = DeviceForm(FakeInventory(), mode="create").open()

    with pytest.raises(AttributeValidationError):
        form.set_field("status", "assigned")
    with pytest.raises(FormStateError):
        form.set_field("assigned_person_id", 4)


def test_received_pending_clears_received_date():
    form = DeviceForm(FakeInventory(), mode="create").open()
    form.set_field("received_date", "2024-03-02")
    assert form.received_pending is False

    form.set_received_pending(True)

    assert form.values.received_date == ""
    assert form.received_pending is True


def test_attributes_go_through_the_type_schema():
    form = DeviceForm(FakeInventory(), mode="create").open()

    form.set_attribute("cpu", "Ryzen 5")
    with pytest.raises(AttributeValidationError):
        form.set_attribute("imeis", ["1"])
    with pytest.raises(FormStateError):
        form.set_attribute("selectedMouseId", "M1")

    form.set_attribute("cpu", None)
    assert "cpu" not in form.values.attributes


def test_missing_code_is_rejected_before_any_call():
    inventory = FakeInventory()
    form = DeviceForm(inventory, mode="create", fixed_type="mouse").open()

    with pytest.raises(AttributeValidationError):
        form.submit()
    assert inventory.count("create_asset") == 0
    assert form.error == "El código es obligatorio"


def test_submit_is_blocked_while_an_accessory_is_being_created():
    inventory = FakeInventory()
    form = _open_laptop(inventory)
    form.check_accessory("hub", True)
    form.choose_new_accessory("hub")

    with pytest.raises(FormStateError):
        form.submit()

    form.cancel_nested()
    form.submit()
    assert inventory.count("create_asset") == 1


def test_unchecking_the_pending_category_closes_the_nested_form():
    form = _open_laptop(FakeInventory())
    form.check_accessory("mouse", True)
    nested = form.choose_new_accessory("mouse")

    form.check_accessory("mouse", False)

    assert form.nested is None
    assert nested.is_open is False
    assert form.links.pending is None


def test_accessories_are_limited_to_the_parent_type():
    form = DeviceForm(FakeInventory(), mode="create", fixed_type="smartphone").open()

    with pytest.raises(AccessoryLinkError):
        form.check_accessory("mouse", True)
    form.check_accessory("cargador-celular", True)
    assert [state.category for state in form.accessory_states()] == ["cargador-celular", "cable-carga"]


def test_nested_form_cannot_create_accessories():
    form = _open_laptop(FakeInventory())
    form.check_accessory("mouse", True)
    nested = form.choose_new_accessory("mouse")

    with pytest.raises(AccessoryLinkError):
        nested.choose_new_accessory("mouse")


def test_server_rejection_keeps_values_and_shows_friendly_message():
    inventory = FakeInventory()
    inventory.save_error = InventoryApiError(
        "Device has an asignación activa and cannot change", upstream_status=400
    )
    form = _open_laptop(inventory)
    form.set_field("brand", "Dell")

    with pytest.raises(InventoryApiError) as excinfo:
        form.submit()

    assert excinfo.value.message == ACTIVE_ASSIGNMENT_MESSAGE
    assert excinfo.value.status_code == 400
    assert form.error == ACTIVE_ASSIGNMENT_MESSAGE
    assert form.values.brand == "Dell"
    assert form.is_open is True


def test_on_save_handler_replaces_the_default_save():
    inventory = FakeInventory()
    received = []

    def on_save(payload):
        received.append(payload)
        return make_asset(55, payload.asset_type, asset_code=payload.asset_code)

    form = DeviceForm(inventory, mode="create", on_save=on_save).open()
    form.set_field("asset_code", "LAPT - ZZZZZ")

    assert form.submit().id == 55
    assert received[0].asset_code == "LAPT - ZZZZZ"
    assert inventory.count("create_asset") == 0


def test_revalidation_catches_accessories_taken_meanwhile(monkeypatch):
    monkeypatch.setattr(get_settings(), "REVALIDATE_ACCESSORIES", True)
    inventory = FakeInventory([make_asset("M1", "mouse")])
    form = _open_laptop(inventory)
    form.check_accessory("mouse", True)
    form.choose_existing_accessory("mouse")
    form.select_accessory("mouse", "M1")
    del inventory.assets["M1"]

    with pytest.raises(AccessoryLinkError) as excinfo:
        form.submit()

    assert excinfo.value.details == {"stale": [{"category": "mouse", "selectedId": "M1"}]}


def test_suggest_asset_code_draws_an_unused_suffix():
    inventory = FakeInventory([make_asset(1, "tablet", asset_code="TABL - AAAAA")])
    form = DeviceForm(inventory, mode="create", fixed_type="tablet").open()

    code = form.suggest_asset_code()

    assert is_valid_code_format(code, "TABL - ")
    assert code != "TABL - AAAAA"
    assert form.values.asset_code == code
    assert ("list_assets", {"assetType": "tablet"}, 1, 2000) in inventory.calls


def test_snapshot_exposes_camel_case_state():
    form = _open_laptop(FakeInventory([make_asset("M1", "mouse")]))
    form.check_accessory("mouse", True)

    snapshot = form.snapshot()

    assert snapshot["values"]["assetCode"] == "LAPT - ABCDE"
    assert snapshot["codePrefix"] == "LAPT - "
    assert snapshot["accessories"][0]["status"] == "checked"
    assert "hasMouseRadio" in {field["key"] for field in snapshot["fields"]}
    assert snapshot["nested"] is None
