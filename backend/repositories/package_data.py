"""
PackageData repository implementation.
"""

from typing import Optional

from pymongo.database import Database

from models.package_data import PackageData
from repositories.base import BaseRepository


class PackageDataRepository(BaseRepository[PackageData]):
    """Repository for PackageData entities."""

    def __init__(self, database: Database):
        super().__init__(database, "package_data", PackageData)

    async def set_archive(self, metadata_id: str, archive_key: str, archive_id: str) -> Optional[PackageData]:
        """
        Record where the archive bytes were stored.

        Args:
            metadata_id: PackageMetadata id
            archive_key: Object key
            archive_id: Archive store receipt

        Returns:
            Updated data, None if the package has no data row
        """
        return await self.update(metadata_id, {"archive_key": archive_key, "archive_id": archive_id})

    async def update_data(
        self, metadata_id: str, url: Optional[str], js_program: Optional[str]
    ) -> Optional[PackageData]:
        """
        Replace the user-editable payload.

        Args:
            metadata_id: PackageMetadata id
            url: New repository URL
            js_program: New audit program

        Returns:
            Updated data, None if the package has no data row
        """
        return await self.update(metadata_id, {"url": url, "js_program": js_program})
