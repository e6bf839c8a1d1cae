#!/usr/bin/env python3
"""
VM Disk Usage Report
Purpose: Report guest disk capacity and free space for every VM on a vCenter

Usage:
    vm_disk_report.py                  # Email the report (mail settings from config)
    vm_disk_report.py file             # Write the report to a temp file and open it
    vm_disk_report.py --config my.yaml # Use a custom config file

Credentials for the vCenter and the mail account are prompted on the first
run and stored per user (see check_credentials.py).
"""

import argparse
import smtplib
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

# Add scripts directory to path for sibling imports
sys.path.insert(0, str(Path(__file__).parent))

# pylint: disable=wrong-import-position
from disk_report_render import DiskUsageRow, ReportRenderer, collect_rows
from report_config import ConfigError, ReportConfig, load_config
from report_credentials import (
    MAIL_SCOPE,
    Credential,
    CredentialStore,
    FixedPathResolver,
    load_or_prompt,
    prompt_for_credential,
    resolver_for_platform,
    scope_identifier,
)
from report_delivery import DeliveryError, FileDelivery, MailDelivery, open_with_default_handler
from vm_inventory import InventoryClient, InventoryConnectionError


# Color output
# pylint: disable=too-few-public-methods
class Colors:
    """ANSI color codes for terminal output"""

    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    NC = "\033[0m"  # No Color


ProgressCallback = Callable[[int, str], None]


def print_progress(percent: int, stage: str) -> None:
    print(f"{Colors.BLUE}[{percent:>3}%]{Colors.NC} {stage}")


@dataclass
class RunState:
    """Everything one report run produces"""
    inventory_credential: Optional[Credential] = None
    mail_credential: Optional[Credential] = None
    rows: List[DiskUsageRow] = field(default_factory=list)
    html: Optional[str] = None
    output_path: Optional[Path] = None
    delivered: bool = False


def build_store(config: ReportConfig) -> CredentialStore:
    if config.credentials_dir:
        return CredentialStore(FixedPathResolver(config.credentials_dir))
    return CredentialStore(resolver_for_platform())


class DiskReportRun:
    """Sequence one report: credentials, connect, enumerate, render, deliver"""

    def __init__(
        self,
        config: ReportConfig,
        file_mode: bool,
        store: CredentialStore,
        client: Optional[InventoryClient] = None,
        renderer: Optional[ReportRenderer] = None,
        progress: ProgressCallback = print_progress,
        prompt: Callable[[str], Credential] = prompt_for_credential,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        opener: Optional[Callable[[Path], None]] = None,
        output_dir: Optional[Path] = None,
    ):
        self.config = config
        self.file_mode = file_mode
        self.store = store
        self.client = client or InventoryClient(
            port=config.vcenter_port, timeout=config.vcenter_timeout
        )
        self.renderer = renderer or ReportRenderer(
            config.template_dir, warning_percent=config.warning_percent
        )
        self.progress = progress
        self.prompt = prompt
        self.smtp_factory = smtp_factory
        self.opener = opener or open_with_default_handler
        self.output_dir = output_dir
        self.state = RunState()

    def check_prerequisites(self) -> None:
        self.config.validate(self.file_mode)
        missing = self.renderer.missing_templates()
        if missing:
            raise ConfigError(f"Report template not found: {missing[0]}")

    def run(self) -> RunState:
        """Run every stage; InventoryConnectionError aborts before enumeration"""
        config = self.config
        state = self.state

        self.progress(0, "Checking prerequisites")
        self.check_prerequisites()

        self.progress(10, f"Loading credentials for {config.vcenter_host}")
        state.inventory_credential = load_or_prompt(
            self.store, scope_identifier(config.vcenter_host), "vCenter", prompt=self.prompt
        )

        if not self.file_mode:
            self.progress(20, "Loading mail credentials")
            state.mail_credential = load_or_prompt(
                self.store, MAIL_SCOPE, "email", prompt=self.prompt
            )

        self.progress(30, f"Connecting to {config.vcenter_host}")
        self.client.connect(
            config.vcenter_host,
            state.inventory_credential.username,
            state.inventory_credential.secret,
        )
        print(f"{Colors.GREEN}✓ Connected to {config.vcenter_host}{Colors.NC}")

        try:
            self.progress(40, "Collecting guest disk usage")
            state.rows = collect_rows(self.client, config.exclude_prefixes)
            print(f"  {len(state.rows)} guest disks found")

            self.progress(70, "Rendering report")
            state.html = self.renderer.render_document(state.rows, config.vcenter_host)

            self.progress(80, "Delivering report")
            self.dispatch()
        finally:
            self.progress(90, "Disconnecting")
            self.client.disconnect()

        self.progress(100, "Done")
        return state

    def dispatch(self) -> None:
        state = self.state
        try:
            if self.file_mode:
                delivery = FileDelivery(
                    self.config.report_filename, directory=self.output_dir, opener=self.opener
                )
                state.output_path = delivery.deliver(state.html)
                print(f"{Colors.GREEN}✓ Report written to: {state.output_path}{Colors.NC}")
            else:
                delivery = MailDelivery(self.config.mail, state.mail_credential,
                                        smtp_factory=self.smtp_factory)
                delivery.deliver(state.html)
                recipients = ", ".join(self.config.mail.recipients)
                print(f"{Colors.GREEN}✓ Report sent to: {recipients}{Colors.NC}")
            state.delivered = True
        except DeliveryError as e:
            print(f"{Colors.YELLOW}WARNING: {e}{Colors.NC}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Report VM guest disk usage from vCenter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "file",
        nargs="?",
        help="Write the report to a local HTML file instead of emailing it (any value)",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to YAML config file (default: config/disk-report.yaml)",
    )

    args = parser.parse_args(argv)
    file_mode = args.file is not None

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"{Colors.RED}ERROR: {e}{Colors.NC}")
        return 1

    print(f"{Colors.GREEN}========================================{Colors.NC}")
    print(f"{Colors.GREEN}VM Disk Usage Report{Colors.NC}")
    print(f"{Colors.GREEN}========================================{Colors.NC}\n")

    report = DiskReportRun(config, file_mode, build_store(config))

    try:
        report.run()
    except ConfigError as e:
        print(f"{Colors.RED}ERROR: {e}{Colors.NC}")
        return 1
    except InventoryConnectionError as e:
        print(f"{Colors.RED}ERROR: {e}{Colors.NC}")
        return 1
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
