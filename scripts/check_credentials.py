#!/usr/bin/env python3
"""
Check Credential Status
Purpose: Display where report credentials are stored and which scopes exist
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

# Add scripts directory to path
sys.path.insert(0, str(Path(__file__).parent))

# pylint: disable=wrong-import-position
from report_config import ConfigError, load_config
from report_credentials import CredentialStore, describe_store, resolver_for_platform
from vm_disk_report import build_store


def main(argv: Optional[List[str]] = None) -> int:
    """
    Print the credential directory, the vault backend and every stored scope.

    Without a readable config file the platform default directory is shown.
    """
    parser = argparse.ArgumentParser(description="Show stored report credentials")
    parser.add_argument('-c', '--config', type=Path, help='Path to YAML config file')
    args = parser.parse_args(argv)

    try:
        store = build_store(load_config(args.config))
    except ConfigError:
        store = CredentialStore(resolver_for_platform())

    print("\n" + "=" * 60)
    print("VM Disk Report Credential Status")
    print("=" * 60 + "\n")

    print(describe_store(store))

    print("\n" + "=" * 60 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
