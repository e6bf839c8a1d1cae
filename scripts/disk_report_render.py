#!/usr/bin/env python3
"""
Guest disk report rendering.

Projects raw guest disk telemetry into report rows and renders the HTML
report from the Jinja2 templates in config/.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from report_config import TEMPLATE_DIR, TEMPLATE_NAME
from vm_inventory import InventoryClient, RawDisk

TABLE_TEMPLATE_NAME = "disk-table.html.j2"
BYTES_PER_MB = 1024 * 1024

CAPTION_BY_FREE_PERCENT = "Guest disks by free space"
CAPTION_BY_VM = "Guest disks by VM"


@dataclass(frozen=True)
class DiskUsageRow:
    vm_name: str
    disk_path: str
    capacity_mb: int
    free_mb: int
    # None when the guest reports zero capacity
    free_percent: Optional[int]


def free_percent(capacity_bytes: int, free_bytes: int) -> Optional[int]:
    """round(100 * free / capacity) clamped to 0..100; None for zero capacity"""
    if capacity_bytes <= 0:
        return None
    percent = round(100 * free_bytes / capacity_bytes)
    return max(0, min(100, percent))


def project(raw: RawDisk, vm_name: str) -> DiskUsageRow:
    # round() is half-to-even
    return DiskUsageRow(
        vm_name=vm_name,
        disk_path=raw.path,
        capacity_mb=round(raw.capacity_bytes / BYTES_PER_MB),
        free_mb=round(raw.free_bytes / BYTES_PER_MB),
        free_percent=free_percent(raw.capacity_bytes, raw.free_bytes),
    )


def sort_by_free_percent(rows: Iterable[DiskUsageRow]) -> List[DiskUsageRow]:
    """Stable ascending sort; rows without a percentage go last"""
    return sorted(
        rows,
        key=lambda row: (row.free_percent is None, row.free_percent or 0),
    )


def collect_rows(client: InventoryClient,
                 exclude_prefixes: Sequence[str] = ()) -> List[DiskUsageRow]:
    """Enumerate VMs and project every guest disk, in enumeration order"""
    prefixes = tuple(p.lower() for p in exclude_prefixes)
    rows = []
    for vm in client.list_vms():
        vm_name = vm.name
        if prefixes and vm_name.lower().startswith(prefixes):
            continue
        for raw in client.guest_disks(vm):
            rows.append(project(raw, vm_name))
    return rows


class ReportRenderer:
    """Render disk usage rows with the report templates"""

    def __init__(self, template_dir: Path = TEMPLATE_DIR, warning_percent: int = 10):
        self.template_dir = Path(template_dir)
        self.warning_percent = warning_percent

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def missing_templates(self) -> List[Path]:
        names = [TEMPLATE_NAME, TABLE_TEMPLATE_NAME]
        return [self.template_dir / name for name in names
                if not (self.template_dir / name).exists()]

    def render_table(self, rows: Sequence[DiskUsageRow], caption: str) -> str:
        template = self.env.get_template(TABLE_TEMPLATE_NAME)
        return template.render(
            rows=rows,
            caption=caption,
            warning_percent=self.warning_percent,
        )

    def render_document(self, rows: Sequence[DiskUsageRow], host: str,
                        generated: Optional[datetime] = None) -> str:
        """Full report: one table sorted by free space, one in VM order"""
        generated = generated or datetime.now()
        tables = [
            self.render_table(sort_by_free_percent(rows), CAPTION_BY_FREE_PERCENT),
            self.render_table(list(rows), CAPTION_BY_VM),
        ]

        template = self.env.get_template(TEMPLATE_NAME)
        return template.render(
            host=host,
            generated=generated.strftime('%Y-%m-%d %H:%M:%S'),
            tables=tables,
            vm_count=len({row.vm_name for row in rows}),
            disk_count=len(rows),
        )
