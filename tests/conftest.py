import sys
from pathlib import Path
from types import SimpleNamespace

import keyring
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from vm_inventory import InventoryClient, InventoryConnectionError  # noqa: E402

MB = 1024 * 1024


def make_vm(name, disks):
    """Fake vim.VirtualMachine: disks is a list of (path, capacity_mb, free_mb)"""
    guest_disks = [
        SimpleNamespace(diskPath=path, capacity=capacity * MB, freeSpace=free * MB)
        for path, capacity, free in disks
    ]
    return SimpleNamespace(name=name, guest=SimpleNamespace(disk=guest_disks))


class FakeInventoryClient(InventoryClient):
    """InventoryClient that serves canned VMs instead of talking to vCenter"""

    def __init__(self, vms=(), fail_connect=False):
        super().__init__()
        self.vms = list(vms)
        self.fail_connect = fail_connect
        self.connected_with = None
        self.disconnect_calls = 0
        self.list_calls = 0

    def connect(self, address, username, password):
        if self.fail_connect:
            raise InventoryConnectionError(f"Failed to connect to {address}: refused")
        self.connected_with = (address, username, password)
        self.si = object()
        return self.si

    def disconnect(self):
        self.disconnect_calls += 1
        self.si = None

    def list_vms(self):
        self.list_calls += 1
        return list(self.vms)


@pytest.fixture
def fake_vault(monkeypatch):
    """Replace the OS credential vault with an in-memory dict"""
    vault = {}

    def get_password(service, username):
        return vault.get((service, username))

    def set_password(service, username, password):
        vault[(service, username)] = password

    monkeypatch.setattr(keyring, "get_password", get_password)
    monkeypatch.setattr(keyring, "set_password", set_password)
    monkeypatch.setattr(keyring, "get_keyring", lambda: SimpleNamespace())
    return vault


@pytest.fixture
def two_vms():
    return [
        make_vm("vm1", [("/", 10000, 2000)]),
        make_vm("vm2", [("/", 5000, 4000)]),
    ]


@pytest.fixture
def config_file(tmp_path):
    def write(text):
        path = tmp_path / "disk-report.yaml"
        path.write_text(text)
        return path
    return write
