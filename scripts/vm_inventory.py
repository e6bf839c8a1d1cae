#!/usr/bin/env python3
"""
vCenter/ESXi inventory access for the disk report.

Opens a pyVmomi session, enumerates virtual machines and reads the guest
disk telemetry reported by VMware Tools.
"""

from dataclasses import dataclass
from typing import List, Optional

from pyVim import connect
from pyVmomi import vim


class InventoryConnectionError(ConnectionError):
    """Raised when the management endpoint cannot be reached or rejects the login"""


@dataclass(frozen=True)
class RawDisk:
    path: str
    capacity_bytes: int
    free_bytes: int


class InventoryClient:
    """Single inventory session against a vCenter Server or ESXi host."""

    def __init__(self, port: int = 443, timeout: Optional[int] = 60):
        self.port = port
        self.timeout = timeout
        self.si: Optional[vim.ServiceInstance] = None

    def connect(self, address: str, username: str, password: str) -> vim.ServiceInstance:
        """Connect to vCenter Server (certificate validation is disabled)."""
        try:
            self.si = connect.SmartConnect(
                host=address,
                user=username,
                pwd=password,
                port=self.port,
                httpConnectionTimeout=self.timeout,
                disableSslCertValidation=True,
            )
        except Exception as e:
            raise InventoryConnectionError(f"Failed to connect to {address}: {e}") from e
        return self.si

    def disconnect(self) -> None:
        """Disconnect from vCenter Server."""
        if self.si:
            connect.Disconnect(self.si)
            self.si = None

    def list_vms(self) -> List[vim.VirtualMachine]:
        """Get all VMs from the inventory."""
        if not self.si:
            raise RuntimeError("Not connected to vCenter")

        content = self.si.RetrieveContent()
        container_view = content.viewManager.CreateContainerView(
            content.rootFolder, [vim.VirtualMachine], True
        )

        vms = list(container_view.view)
        container_view.Destroy()

        return vms

    @staticmethod
    def guest_disks(vm: vim.VirtualMachine) -> List[RawDisk]:
        """Guest disks reported by VMware Tools; empty when the guest is not reporting."""
        guest = vm.guest
        if guest is None or not guest.disk:
            return []

        return [
            RawDisk(
                path=disk.diskPath,
                capacity_bytes=disk.capacity or 0,
                free_bytes=disk.freeSpace or 0,
            )
            for disk in guest.disk
        ]
