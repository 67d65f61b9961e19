"""Print the stored identity record for a wallet address.

Usage: uv run python bin/show-identity.py <wallet_address>

Reads from the store selected by IDENTITY_STORE_BACKEND (sqlite by default).
"""

import asyncio
import contextlib
import logging
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from identity.client import open_store
from identity.errors import StoreFailure
from identity.settings import IdentitySettings
from shared.logging import setup_logging


async def main() -> None:
    if len(sys.argv) != 2:
        print(f"Usage: {sys.argv[0]} <wallet_address>")
        sys.exit(1)

    wallet_address = sys.argv[1]
    settings = IdentitySettings()
    setup_logging(log_dir=settings.log_dir, level=logging.WARNING)

    async with contextlib.AsyncExitStack() as stack:
        store = await open_store(settings, stack)
        try:
            record = await store.get_identity(wallet_address)
        except StoreFailure as e:
            print(f"Error: {e}")
            sys.exit(1)

    if record is None:
        print(f"No identity stored for {wallet_address}")
        sys.exit(1)

    print(f"Username:        {record.username}")
    print(f"Wallet address:  {record.wallet_address}")
    print(f"Highest score:   {record.highest_score}")
    print(f"Games played:    {record.games_played}")
    print(f"On-chain name:   {'confirmed' if record.on_chain_confirmed else 'not yet anchored'}")
    print(f"Created:         {record.created_at.isoformat()}")
    print(f"Updated:         {record.updated_at.isoformat()}")


if __name__ == "__main__":
    asyncio.run(main())
