#!/usr/bin/env python3
# =============================================================================
# scripts/migration_target.py - Show Migration Target
# =============================================================================
# Prints where schema migrations would be applied, as JSON.
#
# Usage:
#   python scripts/migration_target.py
#
#   # Against Cloudflare D1
#   CLOUDFLARE_ACCOUNT_ID=... CLOUDFLARE_DATABASE_ID=... \
#   CLOUDFLARE_API_TOKEN=... python scripts/migration_target.py
# =============================================================================

import json
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from lib.migrations import resolve_migration_target


def main():
    """Resolve and print the migration target."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    load_dotenv()

    target = resolve_migration_target()
    print(json.dumps(target.to_dict(), indent=2))


if __name__ == "__main__":
    main()
