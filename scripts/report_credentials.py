#!/usr/bin/env python3
"""
VM Disk Report Credential Store
Purpose: Persist per-target credentials scoped to the local user account

Each scope (a sanitized host address, or "email") gets a small YAML file
holding the username. The secret itself is kept in the operating system
credential vault through keyring (Windows Credential Manager, macOS Keychain,
Secret Service), so it is encrypted at rest and only readable by the account
that stored it.
"""

import getpass
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

import keyring
import keyring.errors
import yaml

APP_NAME = "vm-disk-report"
CREDENTIAL_EXTENSION = ".cred"
MAIL_SCOPE = "email"


@dataclass(frozen=True)
class Credential:
    username: str
    secret: str

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, secret='***')"


@dataclass(frozen=True)
class NotFound:
    """Returned by CredentialStore.load when no usable credential exists"""
    scope: str
    reason: str


LoadResult = Union[Credential, NotFound]


def scope_identifier(address: str) -> str:
    """
    Derive the credential scope from a host address.

    Every character that is not a Unicode letter or digit is dropped, so
    "vc01.lab.local" and "vc01-lab-local" share the scope "vc01lablocal".
    """
    scope = "".join(ch for ch in address if ch.isalnum())
    if not scope:
        raise ValueError(f"Cannot derive a credential scope from address: {address!r}")
    return scope


# Per-platform credential directories

class CredentialPathResolver:
    """Resolve the user-scoped directory that holds credential files"""

    def directory(self) -> Path:
        raise NotImplementedError


class WindowsPathResolver(CredentialPathResolver):
    def directory(self) -> Path:
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / APP_NAME


class MacPathResolver(CredentialPathResolver):
    def directory(self) -> Path:
        return Path.home() / "Library" / "Application Support" / APP_NAME


class PosixPathResolver(CredentialPathResolver):
    def directory(self) -> Path:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
        return base / APP_NAME


class FixedPathResolver(CredentialPathResolver):
    def __init__(self, path: Path):
        self.path = Path(path)

    def directory(self) -> Path:
        return self.path


def resolver_for_platform(platform: Optional[str] = None) -> CredentialPathResolver:
    """Pick the resolver for the running (or given) platform"""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsPathResolver()
    if platform == "darwin":
        return MacPathResolver()
    return PosixPathResolver()


class CredentialStore:
    """Load and save credentials keyed by scope identifier"""

    def __init__(self, resolver: CredentialPathResolver):
        self.resolver = resolver

    @property
    def directory(self) -> Path:
        return self.resolver.directory()

    def credential_file(self, scope: str) -> Path:
        return self.directory / f"{scope}{CREDENTIAL_EXTENSION}"

    @staticmethod
    def service_name(scope: str) -> str:
        return f"{APP_NAME}:{scope}"

    def load(self, scope: str) -> LoadResult:
        """Return the stored credential for scope, or NotFound"""
        cred_file = self.credential_file(scope)
        if not cred_file.exists():
            return NotFound(scope, f"no credential file at {cred_file}")

        try:
            with open(cred_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            return NotFound(scope, f"unreadable credential file: {e}")

        if not isinstance(data, dict) or not data.get("username"):
            return NotFound(scope, "credential file has no username")

        username = str(data["username"])
        try:
            secret = keyring.get_password(self.service_name(scope), username)
        except keyring.errors.KeyringError as e:
            return NotFound(scope, f"credential vault unavailable: {e}")

        if secret is None:
            return NotFound(scope, "secret missing from credential vault")

        return Credential(username=username, secret=secret)

    def save(self, scope: str, credential: Credential) -> Path:
        """Persist credential for scope, creating the directory if needed"""
        directory = self.directory
        directory.mkdir(parents=True, exist_ok=True)

        keyring.set_password(self.service_name(scope), credential.username, credential.secret)

        cred_file = self.credential_file(scope)
        with open(cred_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump({"scope": scope, "username": credential.username}, f)
        try:
            cred_file.chmod(0o600)
        except OSError:
            # Windows ignores POSIX modes; the vault still protects the secret
            pass
        return cred_file

    def scopes(self) -> List[str]:
        """List the scopes that have a credential file"""
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob(f"*{CREDENTIAL_EXTENSION}"))


def prompt_for_credential(label: str,
                          ask_user: Callable[[str], str] = input,
                          ask_secret: Callable[[str], str] = getpass.getpass) -> Credential:
    """Ask the operator for a username and secret"""
    username = ask_user(f"Enter {label} username: ").strip()
    while not username:
        print("  ⚠ Username cannot be empty")
        username = ask_user(f"Enter {label} username: ").strip()
    secret = ask_secret(f"Enter {label} password: ")
    return Credential(username=username, secret=secret)


def load_or_prompt(store: CredentialStore, scope: str, label: str,
                   prompt: Callable[[str], Credential] = prompt_for_credential) -> Credential:
    """Load the credential for scope, prompting and saving when it is missing"""
    result = store.load(scope)
    if isinstance(result, Credential):
        return result

    print(f"  ⚠ No stored {label} credential ({result.reason})")
    credential = prompt(label)
    try:
        cred_file = store.save(scope, credential)
    except keyring.errors.KeyringError as e:
        print(f"  ⚠ Could not store {label} credential, it will be asked again next run: {e}")
        return credential
    print(f"  ✓ Saved {label} credential: {cred_file}")
    return credential


def describe_store(store: CredentialStore) -> str:
    """Get information about stored credentials"""
    lines = []
    lines.append(f"Credential directory: {store.directory}")
    lines.append(f"Credential vault backend: {keyring.get_keyring().__class__.__name__}")
    lines.append("")

    scopes = store.scopes()
    if not scopes:
        lines.append("⚠ No stored credentials")
        lines.append("  They are created on the first report run")
        return "\n".join(lines)

    lines.append("Stored credentials:")
    for scope in scopes:
        result = store.load(scope)
        if isinstance(result, Credential):
            lines.append(f"  ✓ {scope}: {result.username}")
        else:
            lines.append(f"  ✗ {scope}: {result.reason}")

    return "\n".join(lines)
