from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

import vm_inventory
from conftest import MB, make_vm
from vm_inventory import InventoryClient, InventoryConnectionError, RawDisk


def test_connect_disables_certificate_validation(monkeypatch):
    smart_connect = MagicMock(return_value="si")
    monkeypatch.setattr(vm_inventory.connect, "SmartConnect", smart_connect)

    client = InventoryClient(port=8443, timeout=12)
    assert client.connect("vc01", "admin", "pw") == "si"

    smart_connect.assert_called_once_with(
        host="vc01", user="admin", pwd="pw", port=8443,
        httpConnectionTimeout=12, disableSslCertValidation=True,
    )


def test_connect_failure_is_wrapped(monkeypatch):
    monkeypatch.setattr(vm_inventory.connect, "SmartConnect",
                        MagicMock(side_effect=OSError("unreachable")))
    client = InventoryClient()
    with pytest.raises(InventoryConnectionError, match="unreachable"):
        client.connect("vc01", "admin", "pw")
    assert client.si is None


def test_connection_error_is_builtin_subclass():
    assert issubclass(InventoryConnectionError, ConnectionError)


def test_disconnect_is_idempotent(monkeypatch):
    disconnect = MagicMock()
    monkeypatch.setattr(vm_inventory.connect, "Disconnect", disconnect)
    client = InventoryClient()
    client.si = "si"
    client.disconnect()
    client.disconnect()
    disconnect.assert_called_once_with("si")


def test_list_vms_uses_container_view():
    vms = [make_vm("a", []), make_vm("b", [])]
    view = MagicMock(view=vms)
    content = MagicMock()
    content.viewManager.CreateContainerView.return_value = view
    client = InventoryClient()
    client.si = MagicMock()
    client.si.RetrieveContent.return_value = content

    assert client.list_vms() == vms
    view.Destroy.assert_called_once()


def test_list_vms_requires_session():
    with pytest.raises(RuntimeError):
        InventoryClient().list_vms()


def test_guest_disks():
    vm = make_vm("a", [("/", 100, 25), ("/boot", 1, 1)])
    assert InventoryClient.guest_disks(vm) == [
        RawDisk("/", 100 * MB, 25 * MB),
        RawDisk("/boot", MB, MB),
    ]


def test_guest_disks_without_telemetry():
    assert InventoryClient.guest_disks(SimpleNamespace(name="off", guest=None)) == []
    assert InventoryClient.guest_disks(make_vm("off", [])) == []
