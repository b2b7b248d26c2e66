"""
PackageHistoryEntry repository implementation.
"""

from datetime import datetime
from typing import List

from pymongo.database import Database

from models.package_history import HistoryAction, PackageHistoryEntry
from repositories.base import BaseRepository


class PackageHistoryRepository(BaseRepository[PackageHistoryEntry]):
    """Repository for PackageHistoryEntry entities. Append-only."""

    def __init__(self, database: Database):
        super().__init__(database, "package_history", PackageHistoryEntry)

    async def exists_for_metadata(self, metadata_id: str) -> bool:
        """
        Check whether any history references a package id.

        Args:
            metadata_id: PackageMetadata id

        Returns:
            True if the package has been recorded before
        """
        return await self.exists({"metadata_id": metadata_id})

    async def create_entry(
        self, metadata_id: str, user_id: int, action: HistoryAction, date: datetime
    ) -> PackageHistoryEntry:
        """
        Append a history entry.

        Args:
            metadata_id: PackageMetadata id
            user_id: Acting user
            action: What happened
            date: When it happened

        Returns:
            Created entry
        """
        entry = PackageHistoryEntry(
            metadata_id=metadata_id, user_id=user_id, action=action, date=date
        )
        return await self.create(entry)

    async def find_by_metadata_ids(self, metadata_ids: List[str]) -> List[PackageHistoryEntry]:
        """
        Find every entry for a set of package ids, oldest first.

        Args:
            metadata_ids: PackageMetadata ids

        Returns:
            List of entries
        """
        return await self.find_many(
            {"metadata_id": {"$in": metadata_ids}},
            limit=1000,
            sort=[("date", 1)],
        )
