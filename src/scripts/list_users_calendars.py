#!/usr/bin/env python3
"""
List calendars and their ids so one can be passed to import_calendar.py.

Usage:
    uv run python src/scripts/list_users_calendars.py
    uv run python src/scripts/list_users_calendars.py --mailbox tours@example.com
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from azure.core.exceptions import ClientAuthenticationError

from core.config import GRAPH_MAILBOX
from core.errors import ReconciliationError
from core.graph_client import default_credential_provider, with_credential_refresh


async def print_user_calendars(graph, user_id: str):
    """Print the calendars of one user."""
    calendars_response = await graph.users.by_user_id(user_id).calendars.get()
    calendars = calendars_response.value if calendars_response.value else []

    if not calendars:
        print("  Calendars: None")
        return

    print(f"  Calendars ({len(calendars)}):")
    for cal in calendars:
        default_marker = " (default)" if cal.is_default_calendar else ""
        print(f"    - {cal.name}{default_marker}")
        print(f"      ID: {cal.id}")


async def list_calendars(graph, mailbox: str | None):
    """List one mailbox's calendars, or every user's when no mailbox is given."""
    if mailbox:
        print(f"\nMailbox: {mailbox}")
        await print_user_calendars(graph, mailbox)
        return

    print("Fetching users from MS365...\n")
    users_response = await graph.users.get()
    users = users_response.value if users_response.value else []

    print(f"Found {len(users)} users\n")
    print("=" * 80)

    for user in users:
        print(f"\nUser: {user.display_name}")
        print(f"  Email: {user.user_principal_name}")
        try:
            await print_user_calendars(graph, user.id)
        except ClientAuthenticationError:
            raise
        except Exception as e:
            # Service and admin accounts often have no mailbox
            error_code = getattr(getattr(e, "error", None), "code", None)
            if error_code == "MailboxNotEnabledForRESTAPI":
                print("  Calendars: no mailbox")
            else:
                print(f"  Error fetching calendars: {e}")
        print("-" * 80)


async def main(mailbox: str | None = None) -> int:
    try:
        await with_credential_refresh(
            default_credential_provider(), lambda graph: list_calendars(graph, mailbox)
        )
    except (ReconciliationError, ClientAuthenticationError) as e:
        print(f"\nFatal error: {e}")
        return 1

    print("\nDone!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List MS365 calendars and their ids")
    parser.add_argument(
        "--mailbox",
        default=GRAPH_MAILBOX or None,
        help="Only this mailbox (defaults to GRAPH_MAILBOX; all users when unset)",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.mailbox)))
