"""
Package ingestion pipeline and version-range lookups.

An upload moves through a fixed sequence of states and stops at the first
failing state, except for the best-effort states: a failure there is
reported on the IngestionReport and everything written before it stays.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pymongo.errors import PyMongoError

import env
from models.package_data import PackageData
from models.package_history import HistoryAction
from models.package_metadata import PackageMetadata
from models.package_rating import PackageRating
from services.archive_extractor import (
    ArchiveExtractor,
    RepositoryRef,
    parse_repository_url,
    repository_url_from_manifest,
)
from services.errors import (
    DuplicatePackageError,
    InvalidRepositoryUrlError,
    PersistenceError,
    UpstreamFetchError,
)
from services.rating_scorer import RatingScorer, RatingScores
from services.version_range import resolve_version_range


class IngestionState(str, Enum):
    EXTRACTING = "extracting"
    RESOLVING_REPOSITORY = "resolving_repository"
    CHECKING_DUPLICATE = "checking_duplicate"
    PERSISTING_METADATA = "persisting_metadata"
    RECORDING_HISTORY = "recording_history"
    SCORING_AND_STORING_RATING = "scoring_and_storing_rating"
    STORING_ARCHIVE = "storing_archive"
    DONE = "done"


# A failure in these states is logged and reported; metadata, data and
# history written by earlier states are never rolled back.
BEST_EFFORT_STATES = frozenset(
    {IngestionState.SCORING_AND_STORING_RATING, IngestionState.STORING_ARCHIVE}
)


@dataclass
class IngestionReport:
    """Outcome of one successful ingestion."""

    metadata: PackageMetadata
    repository_url: str
    repository: Optional[RepositoryRef] = None
    state: IngestionState = IngestionState.EXTRACTING
    completed: List[IngestionState] = field(default_factory=list)
    rating: Optional[PackageRating] = None
    archive_id: Optional[str] = None
    failures: Dict[IngestionState, str] = field(default_factory=dict)

    @property
    def fully_ingested(self) -> bool:
        return self.state == IngestionState.DONE and not self.failures


class PackageIngestionService:
    """
    Sequences extraction, validation, persistence, scoring and archive
    storage for one upload, and resolves version-range queries.

    Every collaborator is injected so tests can swap in fakes.
    """

    def __init__(
        self,
        metadata_repo,
        data_repo,
        history_repo,
        rating_repo,
        user_repo,
        archive_store,
        github_client,
        scorer: Optional[RatingScorer] = None,
        extractor: Optional[ArchiveExtractor] = None,
        scoring_timeout: Optional[float] = None,
        range_query_timeout: Optional[float] = None,
        page_size: Optional[int] = None,
    ):
        self.metadata_repo = metadata_repo
        self.data_repo = data_repo
        self.history_repo = history_repo
        self.rating_repo = rating_repo
        self.user_repo = user_repo
        self.archive_store = archive_store
        self.github_client = github_client
        self.scorer = scorer or RatingScorer()
        self.extractor = extractor or ArchiveExtractor()
        self.scoring_timeout = scoring_timeout or env.SCORING_TIMEOUT_SECONDS
        self.range_query_timeout = range_query_timeout or env.RANGE_QUERY_TIMEOUT_SECONDS
        self.page_size = page_size or env.PACKAGE_PAGE_SIZE

    async def ingest_package(
        self,
        archive_bytes: bytes,
        file_name: Optional[str] = None,
        user_id: Optional[int] = None,
        js_program: Optional[str] = None,
    ) -> IngestionReport:
        """
        Run the full ingestion state machine for one upload.

        Args:
            archive_bytes: Raw .zip content
            file_name: Original upload name, used as the archive key
            user_id: Uploading user (defaults to DEFAULT_USER_ID)
            js_program: Optional audit program stored with the package data

        Returns:
            IngestionReport (best-effort failures listed in report.failures)

        Raises:
            ManifestNotFoundError, ManifestParseError, MissingFieldError,
            RepositoryUrlNotFoundError: Malformed upload, nothing written
            InvalidRepositoryUrlError: Manifest URL is not GitHub, nothing written
            DuplicatePackageError: Package id already has history, nothing written
            PersistenceError: Metadata or history write failed
        """
        user_id = env.DEFAULT_USER_ID if user_id is None else user_id

        # EXTRACTING
        manifest = self.extractor.read_manifest(archive_bytes)
        metadata = self.extractor.metadata_from_manifest(manifest)
        report = IngestionReport(
            metadata=metadata, repository_url=repository_url_from_manifest(manifest)
        )
        self._advance(report, IngestionState.RESOLVING_REPOSITORY)

        repository = parse_repository_url(report.repository_url)
        if repository is None:
            print(f"[ingestion] Invalid GitHub repository URL: {report.repository_url}")
            raise InvalidRepositoryUrlError(report.repository_url)
        report.repository = repository
        self._advance(report, IngestionState.CHECKING_DUPLICATE)

        # Ids are fresh UUIDs, so this only trips when the same report is replayed
        try:
            exists = await self.history_repo.exists_for_metadata(metadata.id)
        except PyMongoError as e:
            raise PersistenceError(f"Duplicate check failed: {e}") from e
        if exists:
            raise DuplicatePackageError(metadata.id)
        self._advance(report, IngestionState.PERSISTING_METADATA)

        try:
            report.metadata = await self.metadata_repo.create(metadata)
            await self.data_repo.create(
                PackageData(id=metadata.id, url=report.repository_url, js_program=js_program)
            )
        except PyMongoError as e:
            print(f"[ingestion] ERROR: Failed to upload metadata to the database: {e}")
            raise PersistenceError("Failed to upload metadata to the database.") from e
        self._advance(report, IngestionState.RECORDING_HISTORY)

        await self._record_history(metadata.id, user_id, HistoryAction.CREATE)
        self._advance(report, IngestionState.SCORING_AND_STORING_RATING)

        try:
            scores = await self.compute_rating(repository.owner, repository.repo)
            report.rating = await self.rating_repo.create(
                PackageRating(id=metadata.id, **scores.to_dict())
            )
            print(f"[ingestion] Stored rating for {metadata.name}: net {scores.net_score}")
        except Exception as e:
            self._record_failure(report, e)
        self._advance(report, IngestionState.STORING_ARCHIVE)

        archive_key = file_name or f"{metadata.name}-{metadata.version}.zip"
        try:
            report.archive_id = await self.archive_store.put(archive_key, archive_bytes)
            await self.data_repo.set_archive(metadata.id, archive_key, report.archive_id)
        except Exception as e:
            self._record_failure(report, e)
        self._advance(report, IngestionState.DONE)

        print(
            f"[ingestion] Ingested {metadata.name}@{metadata.version} ({metadata.id})"
            + (f" with {len(report.failures)} best-effort failure(s)" if report.failures else "")
        )
        return report

    async def _record_history(self, metadata_id: str, user_id: int, action: HistoryAction) -> None:
        """Append a history entry after checking both references exist."""
        try:
            if await self.metadata_repo.find_by_id(metadata_id) is None:
                raise PersistenceError(f"No metadata found for ID: {metadata_id}")
            if await self.user_repo.find_by_id(user_id) is None:
                raise PersistenceError(f"No user found for ID: {user_id}")
            await self.history_repo.create_entry(
                metadata_id, user_id, action, datetime.now(timezone.utc)
            )
        except PyMongoError as e:
            print(f"[ingestion] ERROR: Failed to create package history entry: {e}")
            raise PersistenceError("Failed to create package history entry in the database.") from e

    @staticmethod
    def _advance(report: IngestionReport, state: IngestionState) -> None:
        report.completed.append(report.state)
        report.state = state

    @staticmethod
    def _record_failure(report: IngestionReport, error: Exception) -> None:
        report.failures[report.state] = f"{type(error).__name__}: {error}"
        print(f"[ingestion] WARNING: {report.state.value} failed for {report.metadata.id}: {error}")

    async def compute_rating(self, owner: str, repo: str) -> RatingScores:
        """
        Fetch repository signals and score them.

        Args:
            owner: GitHub owner
            repo: GitHub repository

        Returns:
            RatingScores

        Raises:
            UpstreamFetchError: GitHub unreachable or too slow
            UpstreamParseError: GitHub answered with an unexpected shape
        """
        try:
            signals = await asyncio.wait_for(
                asyncio.to_thread(self.github_client.fetch_signals, owner, repo),
                timeout=self.scoring_timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamFetchError(
                f"Fetching signals for {owner}/{repo} exceeded {self.scoring_timeout}s"
            ) from e
        return self.scorer.compute(signals)

    async def find_packages(
        self, name: str, version_expression: str, offset: int = 1
    ) -> Optional[List[PackageMetadata]]:
        """
        Resolve a version range and return one page of matching packages.

        Args:
            name: Package name or "*"
            version_expression: npm-style version range
            offset: 1-based page number (values below 1 mean page 1)

        Returns:
            Page of packages ordered by name then version, None if the query timed out

        Raises:
            InvalidRangeError: Unresolvable range expression
        """
        version_range = resolve_version_range(version_expression)
        return await self.metadata_repo.find_by_range(
            name,
            version_range,
            page=max(1, offset),
            page_size=self.page_size,
            timeout_seconds=self.range_query_timeout,
        )
