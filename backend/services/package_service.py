"""
Package service - read and update operations on ingested packages.
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.errors import PyMongoError

import env
from models.package_data import PackageData
from models.package_history import HistoryAction, PackageHistoryEntry
from models.package_metadata import PackageMetadata
from models.package_rating import PackageRating
from models.user import User
from services.errors import (
    InvalidQueryError,
    PackageMismatchError,
    PackageNotFoundError,
    PersistenceError,
)


@dataclass
class PackageDownload:
    metadata: PackageMetadata
    data: PackageData
    content: Optional[bytes] = None


@dataclass
class HistoryRecord:
    """A history entry joined with the package and user it references."""

    entry: PackageHistoryEntry
    metadata: PackageMetadata
    user: Optional[User] = None


class PackageService:
    """
    Download, update, rating lookup, history and search for stored packages.

    Reads append DOWNLOAD / RATE history as best effort: a failed audit write
    is printed and never fails the read.
    """

    def __init__(
        self,
        metadata_repo,
        data_repo,
        history_repo,
        rating_repo,
        user_repo,
        archive_store,
        query_timeout: Optional[float] = None,
    ):
        self.metadata_repo = metadata_repo
        self.data_repo = data_repo
        self.history_repo = history_repo
        self.rating_repo = rating_repo
        self.user_repo = user_repo
        self.archive_store = archive_store
        self.query_timeout = query_timeout or env.RANGE_QUERY_TIMEOUT_SECONDS

    async def _get_metadata(self, metadata_id: str) -> PackageMetadata:
        try:
            metadata = await self.metadata_repo.find_by_id(metadata_id)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read package {metadata_id}: {e}") from e
        if metadata is None:
            raise PackageNotFoundError(metadata_id)
        return metadata

    async def _record_action(self, metadata_id: str, user_id: int, action: HistoryAction) -> None:
        try:
            await self.history_repo.create_entry(
                metadata_id, user_id, action, datetime.now(timezone.utc)
            )
        except Exception as e:
            print(f"[package_service] WARNING: Failed to record {action.value} for {metadata_id}: {e}")

    async def download_package(self, metadata_id: str, user_id: Optional[int] = None) -> PackageDownload:
        """
        Fetch a package with its archive content.

        Args:
            metadata_id: Package id
            user_id: Downloading user (defaults to DEFAULT_USER_ID)

        Returns:
            PackageDownload (content is None when the archive was never stored)

        Raises:
            PackageNotFoundError: Unknown id
        """
        metadata = await self._get_metadata(metadata_id)
        data = await self.data_repo.find_by_id(metadata_id)
        if data is None:
            raise PackageNotFoundError(metadata_id)

        content = None
        if data.archive_id:
            try:
                content = await self.archive_store.get(data.archive_id)
            except asyncio.TimeoutError as e:
                raise PersistenceError(f"Reading archive {data.archive_id} timed out") from e
            if content is None:
                print(f"[package_service] WARNING: Archive {data.archive_id} missing for {metadata_id}")

        await self._record_action(
            metadata_id, env.DEFAULT_USER_ID if user_id is None else user_id, HistoryAction.DOWNLOAD
        )
        return PackageDownload(metadata=metadata, data=data, content=content)

    async def update_package(
        self,
        metadata_id: str,
        name: str,
        version: str,
        url: Optional[str] = None,
        js_program: Optional[str] = None,
        content: Optional[bytes] = None,
        file_name: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> PackageData:
        """
        Replace a package's data payload. Identity never changes.

        Args:
            metadata_id: Package id
            name: Must equal the stored name
            version: Must equal the stored version
            url: New repository URL
            js_program: New audit program
            content: New archive bytes, archive left untouched if None
            file_name: Archive key for the new content
            user_id: Updating user (defaults to DEFAULT_USER_ID)

        Returns:
            Updated PackageData

        Raises:
            PackageNotFoundError: Unknown id
            PackageMismatchError: Name or version differ from the stored package
            PersistenceError: Database or archive write failed
        """
        metadata = await self._get_metadata(metadata_id)
        if metadata.name != name or metadata.version != version:
            raise PackageMismatchError("Package ID, name, or version do not match.")

        previous = await self.data_repo.find_by_id(metadata_id)
        if previous is None:
            raise PackageNotFoundError(metadata_id)

        try:
            updated = await self.data_repo.update_data(metadata_id, url, js_program)
            if content is not None:
                archive_key = file_name or previous.archive_key or f"{name}-{version}.zip"
                archive_id = await self.archive_store.put(archive_key, content)
                updated = await self.data_repo.set_archive(metadata_id, archive_key, archive_id)
                if previous.archive_id:
                    await self.archive_store.delete(previous.archive_id)
        except (PyMongoError, asyncio.TimeoutError) as e:
            print(f"[package_service] ERROR: Failed to update package {metadata_id}: {e!r}")
            raise PersistenceError(f"Failed to update package {metadata_id}") from e

        try:
            await self.history_repo.create_entry(
                metadata_id,
                env.DEFAULT_USER_ID if user_id is None else user_id,
                HistoryAction.UPDATE,
                datetime.now(timezone.utc),
            )
        except PyMongoError as e:
            raise PersistenceError("Failed to create package history entry in the database.") from e

        print(f"[package_service] Updated {name}@{version} ({metadata_id})")
        return updated

    async def get_rating(self, metadata_id: str, user_id: Optional[int] = None) -> PackageRating:
        """
        Return the stored rating of a package.

        Raises:
            PackageNotFoundError: Unknown id, or the package was never rated
        """
        await self._get_metadata(metadata_id)
        rating = await self.rating_repo.find_by_id(metadata_id)
        if rating is None:
            raise PackageNotFoundError(metadata_id)
        await self._record_action(
            metadata_id, env.DEFAULT_USER_ID if user_id is None else user_id, HistoryAction.RATE
        )
        return rating

    async def get_history(self, name: str) -> List[HistoryRecord]:
        """
        Return every history entry for every version of a package, oldest first.

        Args:
            name: Package name

        Returns:
            List of HistoryRecord (empty if the name is unknown)
        """
        try:
            versions = await self.metadata_repo.find_by_name(name)
            if not versions:
                return []
            by_id = {metadata.id: metadata for metadata in versions}
            entries = await self.history_repo.find_by_metadata_ids(list(by_id))

            users = {}
            for user_id in {entry.user_id for entry in entries}:
                users[user_id] = await self.user_repo.find_by_id(user_id)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read history for '{name}': {e}") from e

        return [
            HistoryRecord(entry=entry, metadata=by_id[entry.metadata_id], user=users.get(entry.user_id))
            for entry in entries
        ]

    async def search_by_regex(self, pattern: str) -> List[PackageMetadata]:
        """
        Find packages whose name matches a regular expression.

        Raises:
            InvalidQueryError: Pattern does not compile
            PersistenceError: Query failed or exceeded the timeout
        """
        try:
            re.compile(pattern)
        except re.error as e:
            raise InvalidQueryError(f"Invalid regular expression '{pattern}': {e}") from e

        results = await self.metadata_repo.search_by_regex(pattern, timeout_seconds=self.query_timeout)
        if results is None:
            raise PersistenceError(f"Regex search '{pattern}' failed or timed out")
        return results
