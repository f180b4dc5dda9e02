#!/usr/bin/env python3
"""
Maintenance script: Rebuild cached storage location paths.

Recomputes path_names, path_ids and depth of every location from parent
pointers and current names. Use after a bulk import or to repair rows whose
cached path drifted from the tree.

Usage:
    python -m scripts.rebuild_location_paths [--owner-id UUID] [--dry-run]
"""

import argparse
import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from stuff_tracker.core.database import close_db, get_session_factory
from stuff_tracker.repositories.location import LocationRepository
from stuff_tracker.services.location_service import LocationService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def rebuild_all(
    session: AsyncSession,
    owner_ids: list[UUID] | None = None,
) -> dict[UUID, int]:
    """
    Rebuild the location paths of the given owners, or of every owner.

    Args:
        session: Database session
        owner_ids: Owners to rebuild; all owners with locations when None

    Returns:
        Mapping of owner id to number of rewritten locations
    """
    if owner_ids is None:
        owner_ids = await LocationRepository(session).get_owner_ids()

    logger.info(f"Rebuilding location paths for {len(owner_ids)} owner(s)")

    service = LocationService(session)
    rebuilt: dict[UUID, int] = {}
    for i, owner_id in enumerate(owner_ids, 1):
        rebuilt[owner_id] = await service.rebuild_paths(owner_id)
        logger.info(f"[{i}/{len(owner_ids)}] Owner {owner_id}: {rebuilt[owner_id]} location(s) rewritten")

    return rebuilt


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rebuild cached storage location paths from parent pointers"
    )
    parser.add_argument(
        "--owner-id",
        type=UUID,
        action="append",
        dest="owner_ids",
        help="Only rebuild this owner's locations (repeatable)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be changed without modifying the database",
    )
    args = parser.parse_args()

    logger.info("=" * 70)
    logger.info("Storage Location Path Rebuild")
    logger.info("=" * 70)
    if args.dry_run:
        logger.info("DRY RUN MODE - No changes will be made")
    logger.info("=" * 70)

    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            rebuilt = await rebuild_all(session, owner_ids=args.owner_ids)

            if args.dry_run:
                await session.rollback()
            else:
                await session.commit()

            logger.info("=" * 70)
            logger.info("Rebuild complete!")
            logger.info(f"  Owners: {len(rebuilt)}")
            logger.info(f"  Rewritten locations: {sum(rebuilt.values())}")
            logger.info("=" * 70)

        except Exception as e:
            await session.rollback()
            logger.error(f"Rebuild failed: {e}", exc_info=True)
            raise
        finally:
            await close_db()


if __name__ == "__main__":
    asyncio.run(main())
