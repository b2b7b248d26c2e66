"""
PackageMetadata repository implementation.
"""

import asyncio
from typing import List, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from models.package_metadata import PackageMetadata
from repositories.base import BaseRepository
from services.version_range import VersionRange, version_sort_key

WILDCARD_NAME = "*"


def range_filter(name: str, version_range: VersionRange) -> dict:
    """
    Build the MongoDB predicate for a name and version window.

    Args:
        name: Exact package name, or "*" for every package
        version_range: Resolved bounds

    Returns:
        MongoDB filter on name and version_key
    """
    lower_op = "$gte" if version_range.min_inclusive else "$gt"
    upper_op = "$lte" if version_range.max_inclusive else "$lt"
    filter_dict: dict = {
        "version_key": {
            lower_op: version_sort_key(version_range.min),
            upper_op: version_sort_key(version_range.max),
        }
    }
    if name != WILDCARD_NAME:
        filter_dict["name"] = name
    return filter_dict


class PackageMetadataRepository(BaseRepository[PackageMetadata]):
    """Repository for PackageMetadata entities."""

    # Stable page order; insertion order is not guaranteed across a sharded or rebuilt collection
    PAGE_SORT = [("name", 1), ("version_key", 1), ("_id", 1)]

    def __init__(self, database: Database):
        super().__init__(database, "package_metadata", PackageMetadata)

    async def create(self, entity: PackageMetadata) -> PackageMetadata:
        """Create metadata, deriving the version key used by range queries."""
        if entity.version_key is None:
            entity = entity.model_copy(update={"version_key": version_sort_key(entity.version)})
        return await super().create(entity)

    async def find_by_range(
        self,
        name: str,
        version_range: VersionRange,
        page: int,
        page_size: int,
        timeout_seconds: float,
    ) -> Optional[List[PackageMetadata]]:
        """
        Find one page of packages inside a version window.

        Args:
            name: Package name or "*"
            version_range: Resolved bounds
            page: 1-based page number
            page_size: Packages per page
            timeout_seconds: Hard limit for the query

        Returns:
            List of packages, None if the query failed or timed out
        """
        skip = (max(1, page) - 1) * page_size
        try:
            return await asyncio.wait_for(
                self.find_many(
                    range_filter(name, version_range),
                    skip=skip,
                    limit=page_size,
                    sort=self.PAGE_SORT,
                    max_time_ms=int(timeout_seconds * 1000),
                ),
                timeout=timeout_seconds,
            )
        except (asyncio.TimeoutError, PyMongoError) as e:
            print(f"[package_metadata] ERROR: Range query for '{name}' failed: {e!r}")
            return None

    async def search_by_regex(
        self, pattern: str, timeout_seconds: float, limit: int = 100
    ) -> Optional[List[PackageMetadata]]:
        """
        Find packages whose name matches a regular expression.

        Args:
            pattern: Regular expression
            timeout_seconds: Hard limit for the query
            limit: Maximum results

        Returns:
            List of packages, None if the query failed or timed out
        """
        try:
            return await asyncio.wait_for(
                self.find_many(
                    {"name": {"$regex": pattern}},
                    limit=limit,
                    sort=self.PAGE_SORT,
                    max_time_ms=int(timeout_seconds * 1000),
                ),
                timeout=timeout_seconds,
            )
        except (asyncio.TimeoutError, PyMongoError) as e:
            print(f"[package_metadata] ERROR: Regex query '{pattern}' failed: {e!r}")
            return None

    async def find_by_name(self, name: str) -> List[PackageMetadata]:
        """
        Find every version of a package.

        Args:
            name: Package name

        Returns:
            List of packages
        """
        return await self.find_many({"name": name}, limit=1000, sort=self.PAGE_SORT)
