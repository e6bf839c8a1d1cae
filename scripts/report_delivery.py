#!/usr/bin/env python3
"""
Report delivery: local HTML file or HTML email.
"""

import os
import smtplib
import subprocess
import sys
import tempfile
from email.mime.text import MIMEText
from pathlib import Path
from typing import Callable, Optional

from report_config import MailSettings
from report_credentials import Credential


class DeliveryError(Exception):
    """Raised when the report could not be delivered"""


def open_with_default_handler(path: Path) -> None:
    """Open a file with the platform's default application"""
    if sys.platform.startswith("win"):
        os.startfile(str(path))  # pylint: disable=no-member
    elif sys.platform == "darwin":
        subprocess.run(["open", str(path)], check=False)
    else:
        subprocess.run(["xdg-open", str(path)], check=False)


class FileDelivery:
    """Write the report to the temp directory and open it"""

    def __init__(self, filename: str,
                 directory: Optional[Path] = None,
                 opener: Callable[[Path], None] = open_with_default_handler):
        self.filename = filename
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())
        self.opener = opener

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def deliver(self, html: str) -> Path:
        try:
            self.path.write_text(html, encoding='utf-8')
        except OSError as e:
            raise DeliveryError(f"Failed to write report to {self.path}: {e}") from e

        try:
            self.opener(self.path)
        except OSError as e:
            # The report exists even if no viewer could be launched
            print(f"  ⚠ Could not open {self.path}: {e}")
        return self.path


class MailDelivery:
    """Send the report as an HTML email"""

    def __init__(self, settings: MailSettings, credential: Credential,
                 smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP):
        self.settings = settings
        self.credential = credential
        self.smtp_factory = smtp_factory

    def build_message(self, html: str) -> MIMEText:
        msg = MIMEText(html, 'html', 'utf-8')
        msg['Subject'] = self.settings.subject
        msg['From'] = self.settings.sender
        msg['To'] = ', '.join(self.settings.recipients)
        return msg

    def deliver(self, html: str) -> None:
        settings = self.settings
        msg = self.build_message(html)

        try:
            with self.smtp_factory(settings.smtp_host, settings.smtp_port,
                                   timeout=settings.timeout) as smtp:
                if settings.use_tls:
                    smtp.starttls()
                if self.credential.username:
                    smtp.login(self.credential.username, self.credential.secret)
                smtp.sendmail(settings.sender, settings.recipients, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(
                f"Failed to send report via {settings.smtp_host}:{settings.smtp_port}: {e}"
            ) from e
