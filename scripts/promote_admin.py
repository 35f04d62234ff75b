#!/usr/bin/env python3
"""Admin script to change a staff member's role.

New accounts always start as housekeepers; use this to bootstrap the first admin.

Usage:
    python scripts/promote_admin.py <email> [--role admin|housekeeper]
    python scripts/promote_admin.py --list
"""

import asyncio
import logging
import sys

from src.core import db_client
from src.core.db_client import sanitize_param
from src.domain.actor import Role


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def list_staff() -> None:
    """List all accounts with their roles."""
    credentials = await db_client.list_records(collection="credentials", sort="email", per_page=1000)

    for credential in credentials:
        try:
            profile = await db_client.get_record(collection="profiles", record_id=credential["user_id"])
        except db_client.RecordNotFoundError:
            logger.info("%s - missing profile", credential["email"])
            continue
        logger.info("%s - %s (%s)", credential["email"], profile.get("full_name") or "Unnamed", profile["role"])


async def set_role(email: str, role: Role) -> None:
    """Set the role of the account registered under an email.

    Args:
        email: Sign-in email of the account
        role: Role to assign
    """
    credential = await db_client.get_first_record(
        collection="credentials",
        filter_query=f'email = "{sanitize_param(email.strip().lower())}"',
    )

    if not credential:
        logger.error("No account for %s", email)
        sys.exit(1)

    await db_client.update_record(
        collection="profiles",
        record_id=credential["user_id"],
        data={"role": role},
    )
    logger.info("%s is now %s", email, role)


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    await db_client.init_db()

    if "--list" in args:
        await list_staff()
        return

    email = args[0]
    role = Role.ADMIN

    if "--role" in args:
        role_index = args.index("--role")
        if role_index + 1 >= len(args) or args[role_index + 1] not in {r.value for r in Role}:
            print_usage()
            sys.exit(1)
        role = Role(args[role_index + 1])

    await set_role(email, role)


if __name__ == "__main__":
    asyncio.run(main())
