#!/usr/bin/env python3
"""Alembic bootstrap for create_all-era databases.

If the users/tokens tables already exist but alembic_version is missing,
stamp the initial revision before normal upgrades.
"""

from __future__ import annotations

import os
import subprocess

from sqlalchemy import inspect

from walletlink.database import engine


BASELINE_REVISION = os.getenv("ALEMBIC_BASELINE_REVISION", "001")
BUSINESS_TABLES = ("users", "tokens")


def needs_baseline_stamp(inspector) -> bool:
    has_alembic_version = inspector.has_table("alembic_version")
    has_business_schema = all(inspector.has_table(table) for table in BUSINESS_TABLES)
    return not has_alembic_version and has_business_schema


def main() -> int:
    if needs_baseline_stamp(inspect(engine)):
        print(
            "Existing schema detected without alembic_version. "
            f"Stamping baseline: {BASELINE_REVISION}"
        )
        subprocess.run(["alembic", "stamp", BASELINE_REVISION], check=True)
    else:
        print("Alembic bootstrap check: no baseline stamp required")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
