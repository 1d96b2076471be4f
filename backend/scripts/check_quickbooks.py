#!/usr/bin/env python3
"""Check the QuickBooks Desktop connection and list the account IDs needed for inventory.

Runs the Conductor health check for the configured end user, then prints the
accounts to use for incomeAccountId, cogsAccountId, assetAccountId and
QUICKBOOKS_INVENTORY_ADJUSTMENT_ACCOUNT_ID.

Usage:
    python scripts/check_quickbooks.py
    python scripts/check_quickbooks.py -v  # also print every account
    python scripts/check_quickbooks.py --key <KEY> --end-user <END_USER_ID>
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load credentials before settings are read
SCRIPT_DIR = Path(__file__).parent
load_dotenv(SCRIPT_DIR.parent / ".env")

from qbd_assistant.api.endpoints.quickbooks import account_type
from qbd_assistant.core.config import ConductorConfig, settings
from qbd_assistant.services.conductor import (
    ConductorAuthenticationError,
    ConductorClient,
    ConductorConnectionError,
    ConductorError,
)

ACCOUNT_GROUPS = [
    ("Income accounts (incomeAccountId)", "income"),
    ("Cost of Goods Sold accounts (cogsAccountId)", "cost_of_goods_sold"),
    ("Asset accounts (assetAccountId)", "other_current_asset"),
    ("Expense accounts (QUICKBOOKS_INVENTORY_ADJUSTMENT_ACCOUNT_ID)", "other_expense"),
]


async def check_connection(client: ConductorClient) -> bool:
    """Run the Conductor health check."""
    print("\n" + "=" * 60)
    print("Checking QuickBooks Desktop connection...")
    print("=" * 60)

    try:
        result = await client.health_check()
        print("✅ Connection successful!")
        if result.get("duration") is not None:
            print(f"   Round trip: {result['duration']} ms")
        return True
    except ConductorAuthenticationError as e:
        print(f"❌ Authentication failed: {e}")
        print("   Check CONDUCTOR_API_KEY")
        return False
    except ConductorConnectionError as e:
        print(f"❌ Connection failed: {e}")
        return False
    except ConductorError as e:
        print(f"❌ API error: {e}")
        if e.user_facing_message:
            print(f"   {e.user_facing_message}")
        return False


async def show_accounts(client: ConductorClient, verbose: bool = False) -> None:
    """Print the accounts relevant to inventory items."""
    print("\n" + "=" * 60)
    print("Accounts for inventory setup")
    print("=" * 60)

    try:
        accounts = await client.accounts.list_all()
    except ConductorError as e:
        print(f"❌ Failed to list accounts: {e}")
        return

    print(f"Found {len(accounts)} accounts")

    for title, wanted in ACCOUNT_GROUPS:
        group = [a for a in accounts if account_type(a) == wanted]
        print(f"\n{title}:")
        if not group:
            print("   (none)")
        for account in group:
            print(f"   {account.get('id')}  {account.get('fullName') or account.get('name')}")

    if verbose:
        print("\nAll accounts:")
        for account in accounts:
            print(
                f"   {account.get('id')}  {account.get('accountType')}  "
                f"{account.get('fullName') or account.get('name')}"
            )


async def main(config: ConductorConfig, verbose: bool = False) -> None:
    """Run all checks."""
    print("=" * 60)
    print("QuickBooks Desktop Connection Check")
    print("=" * 60)
    print(f"Base URL: {config.base_url}")
    print(f"End user: {config.end_user_id}")
    print(
        f"Adjustment account: {config.adjustment_account_id}"
        if config.adjustment_account_id
        else "Adjustment account: [not set]"
    )

    async with ConductorClient(config) as client:
        if not await check_connection(client):
            print("\n❌ Connection check failed. Please check your credentials.")
            return
        await show_accounts(client, verbose)

    print("\n" + "=" * 60)
    print("Check Complete!")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Check the QuickBooks Desktop connection")
    parser.add_argument("--key", help="Conductor API key (default: CONDUCTOR_API_KEY)")
    parser.add_argument("--end-user", help="Conductor end-user ID (default: CONDUCTOR_END_USER_ID)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show every account")
    args = parser.parse_args()

    api_key = args.key or settings.conductor_api_key
    end_user_id = args.end_user or settings.conductor_end_user_id

    if not api_key or not end_user_id:
        print("Error: a Conductor API key and end-user ID are required")
        print("Set CONDUCTOR_API_KEY and CONDUCTOR_END_USER_ID in .env or use --key/--end-user")
        sys.exit(1)

    config = ConductorConfig(
        api_key=api_key,
        end_user_id=end_user_id,
        base_url=settings.conductor_base_url,
        timeout=settings.conductor_timeout,
        adjustment_account_id=settings.quickbooks_inventory_adjustment_account_id or None,
    )
    asyncio.run(main(config, args.verbose))
