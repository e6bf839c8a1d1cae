#!/usr/bin/env python3
"""
VM Disk Report Configuration
Purpose: Load report settings from YAML with environment variable overrides

Priority order for every overridable value:
  1. Environment variable (DISK_REPORT_*)
  2. Config file (config/disk-report.yaml)
  3. Built-in default
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

PROJECT_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_FILE = PROJECT_DIR / "config" / "disk-report.yaml"
TEMPLATE_DIR = PROJECT_DIR / "config"
TEMPLATE_NAME = "disk-report.html.j2"

ENV_OVERRIDES = {
    "DISK_REPORT_VCENTER_HOST": ("vcenter", "host"),
    "DISK_REPORT_SMTP_HOST": ("mail", "smtp_host"),
    "DISK_REPORT_SMTP_PORT": ("mail", "smtp_port"),
    "DISK_REPORT_SMTP_TLS": ("mail", "use_tls"),
    "DISK_REPORT_SENDER": ("mail", "sender"),
    "DISK_REPORT_RECIPIENTS": ("mail", "recipients"),
}

TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigError(Exception):
    """Raised when the configuration is missing or unusable"""


@dataclass
class MailSettings:
    sender: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 25
    use_tls: bool = False
    recipients: List[str] = field(default_factory=list)
    subject: str = "VM Disk Usage Report"
    timeout: int = 30


@dataclass
class ReportConfig:
    vcenter_host: str
    vcenter_port: int = 443
    vcenter_timeout: int = 60
    mail: MailSettings = field(default_factory=MailSettings)
    exclude_prefixes: List[str] = field(default_factory=lambda: ["vCLS"])
    warning_percent: int = 10
    report_filename: str = "VM-Disk-Report.html"
    credentials_dir: Optional[Path] = None
    template_dir: Path = TEMPLATE_DIR
    source: Optional[Path] = None

    def validate(self, file_mode: bool) -> None:
        """Check the settings needed by the selected delivery mode"""
        if not self.vcenter_host:
            raise ConfigError("Missing 'vcenter.host' in config")
        if not any(ch.isalnum() for ch in self.vcenter_host):
            raise ConfigError(
                f"'vcenter.host' has no letters or digits: {self.vcenter_host!r}"
            )

        if file_mode:
            return

        missing = []
        if not self.mail.sender:
            missing.append("mail.sender")
        if not self.mail.smtp_host:
            missing.append("mail.smtp_host")
        if not self.mail.recipients:
            missing.append("mail.recipients")
        if missing:
            raise ConfigError(
                f"Mail delivery requires: {', '.join(missing)}\n"
                "Set them in the config file or pass 'file' to write the report locally"
            )


def parse_name_list(value: Any) -> List[str]:
    """Accept a list or a comma/semicolon separated string"""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.replace(";", ",").split(",")
    else:
        parts = [str(item) for item in value]
    return [part.strip() for part in parts if part.strip()]


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def _apply_env_overrides(raw: Dict[str, Any]) -> None:
    for env_var, (section, key) in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_var)
        if env_value:
            # an empty section ("mail:") loads as None
            section_values = raw.get(section) or {}
            raw[section] = section_values
            section_values[key] = env_value


def _to_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be an integer, got: {value!r}")


def load_config(config_file: Optional[Path] = None) -> ReportConfig:
    """Load configuration from YAML file and apply environment overrides"""
    config_file = Path(config_file) if config_file else DEFAULT_CONFIG_FILE

    if not config_file.exists():
        raise ConfigError(
            f"Config file not found: {config_file}\n"
            f"Create from: {config_file.name}.example"
        )

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to load config: {e}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_file}")

    _apply_env_overrides(raw)

    vcenter = raw.get("vcenter") or {}
    mail = raw.get("mail") or {}
    report = raw.get("report") or {}
    credentials = raw.get("credentials") or {}

    mail_settings = MailSettings(
        sender=mail.get("sender"),
        smtp_host=mail.get("smtp_host"),
        smtp_port=_to_int(mail.get("smtp_port", 25), "mail.smtp_port"),
        use_tls=parse_bool(mail.get("use_tls", False)),
        recipients=parse_name_list(mail.get("recipients")),
        subject=mail.get("subject") or MailSettings.subject,
        timeout=_to_int(mail.get("timeout", 30), "mail.timeout"),
    )

    credentials_dir = credentials.get("directory")
    template_dir = report.get("template_dir")

    return ReportConfig(
        vcenter_host=str(vcenter.get("host") or ""),
        vcenter_port=_to_int(vcenter.get("port", 443), "vcenter.port"),
        vcenter_timeout=_to_int(vcenter.get("timeout", 60), "vcenter.timeout"),
        mail=mail_settings,
        exclude_prefixes=parse_name_list(report.get("exclude_prefixes", ["vCLS"])),
        warning_percent=_to_int(report.get("warning_percent", 10), "report.warning_percent"),
        report_filename=report.get("filename") or "VM-Disk-Report.html",
        credentials_dir=Path(credentials_dir).expanduser() if credentials_dir else None,
        template_dir=Path(template_dir).expanduser() if template_dir else TEMPLATE_DIR,
        source=config_file,
    )
