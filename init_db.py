"""Initialize the configured submission store.

Creates the empty JSON collection file or the ``contact_submissions`` table.
Existing submissions are never touched. The API also does this on startup;
run it ahead of time to check permissions and connectivity.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from contact_api.config import settings
from contact_api.store import build_store


async def init_store():
    """Create the backing collection if it does not exist."""
    store = build_store(settings.store)
    print(f"Initializing {settings.store.backend.value} store: {store.location}")
    try:
        await store.init()
        existing = await store.list_all()
    finally:
        await store.close()
    print(f"✓ Store ready ({len(existing)} existing submissions)")


async def main():
    """Main entry point."""
    try:
        await init_store()
    except Exception as e:
        print(f"\n❌ Error initializing store: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
