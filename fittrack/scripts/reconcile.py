#!/usr/bin/env python3
"""
Recompute every goal's currentValue from its progress history.

Repairs goals left with a stale value after a failed recomputation
(the API reported CONSISTENCY_ERROR but kept the progress change).
Safe to run any number of times.

Usage:
    fittrack-reconcile
"""

import asyncio
import sys

from ..core.database import connect_db, disconnect_db, get_client
from ..services.consistency_service import reconcile_all_goals
from ..utils.logging_config import configure_logging


async def reconcile() -> dict[str, int]:
    """Connect, reconcile all goals, disconnect."""
    await connect_db()
    try:
        print("Reconciling goal currentValue against progress history...")
        result = await reconcile_all_goals(get_client())
        print(f"Checked {result['checked']} goal(s), corrected {result['corrected']}.")
        return result
    finally:
        await disconnect_db()


def main() -> None:
    configure_logging()
    try:
        asyncio.run(reconcile())
    except Exception as e:
        print(f"Error during reconciliation: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
