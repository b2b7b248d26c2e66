import asyncio
import time

import pytest
from pymongo.errors import PyMongoError

from conftest import make_package_zip, make_zip, total_writes
from models.package_history import HistoryAction
from models.package_metadata import PackageMetadata
from services.errors import (
    DuplicatePackageError,
    InvalidRangeError,
    InvalidRepositoryUrlError,
    ManifestNotFoundError,
    PersistenceError,
    UpstreamFetchError,
)
from services.github_client import RepositorySignals
from services.ingestion import BEST_EFFORT_STATES, IngestionState, PackageIngestionService


def ingest(service, archive, **kwargs):
    return asyncio.run(service.ingest_package(archive, **kwargs))


def test_successful_ingestion(ingestion_service, repos):
    report = ingest(ingestion_service, make_package_zip(), file_name="widget.zip")

    assert report.state == IngestionState.DONE
    assert report.fully_ingested
    assert report.completed[0] == IngestionState.EXTRACTING
    assert IngestionState.STORING_ARCHIVE in report.completed
    assert report.repository_url == "https://github.com/acme/widget"
    assert repos.github.calls == [("acme", "widget")]

    metadata_id = report.metadata.id
    assert repos.metadata.items[metadata_id].version_key == "000001.000002.000003"
    assert repos.history.actions() == [HistoryAction.CREATE.value]
    assert repos.rating.items[metadata_id].net_score == report.rating.net_score
    stored = repos.data.items[metadata_id]
    assert stored.archive_key == "widget.zip"
    assert stored.archive_id == report.archive_id
    assert repos.archive.objects[report.archive_id][1] == make_package_zip()


def test_missing_manifest_writes_nothing(ingestion_service, repos):
    with pytest.raises(ManifestNotFoundError):
        ingest(ingestion_service, make_zip({"README.md": "# widget"}))
    assert total_writes(repos) == 0
    assert repos.github.calls == []


def test_non_github_repository_writes_nothing(ingestion_service, repos):
    archive = make_package_zip(repository="https://gitlab.com/acme/widget")
    with pytest.raises(InvalidRepositoryUrlError):
        ingest(ingestion_service, archive)
    assert total_writes(repos) == 0


def test_upstream_failure_keeps_metadata_and_history(repos):
    repos.github.error = UpstreamFetchError("GitHub unavailable")
    service = PackageIngestionService(
        repos.metadata, repos.data, repos.history, repos.rating, repos.user,
        repos.archive, repos.github,
    )
    report = ingest(service, make_package_zip())

    assert report.state == IngestionState.DONE
    assert report.rating is None
    assert not report.fully_ingested
    assert list(report.failures) == [IngestionState.SCORING_AND_STORING_RATING]
    assert report.metadata.id in repos.metadata.items
    assert repos.history.actions() == [HistoryAction.CREATE.value]
    assert repos.rating.items == {}
    # Later best-effort steps still run
    assert report.archive_id is not None


def test_archive_failure_is_not_fatal(ingestion_service, repos):
    repos.archive.fail = True
    report = ingest(ingestion_service, make_package_zip())

    assert list(report.failures) == [IngestionState.STORING_ARCHIVE]
    assert report.archive_id is None
    assert report.rating is not None
    assert repos.data.items[report.metadata.id].archive_id is None


def test_failures_only_come_from_best_effort_states(ingestion_service, repos):
    repos.github.error = RuntimeError("boom")
    repos.archive.fail = True
    report = ingest(ingestion_service, make_package_zip())
    assert set(report.failures) == set(BEST_EFFORT_STATES)


def test_same_bytes_ingested_twice_both_succeed(ingestion_service, repos):
    archive = make_package_zip()
    first = ingest(ingestion_service, archive)
    second = ingest(ingestion_service, archive)
    assert first.metadata.id != second.metadata.id
    assert len(repos.metadata.items) == 2


def test_duplicate_id_is_rejected(ingestion_service, repos):
    archive = make_package_zip()
    first = ingest(ingestion_service, archive)

    class ReplayingExtractor(type(ingestion_service.extractor)):
        def metadata_from_manifest(self, manifest):
            return PackageMetadata(id=first.metadata.id, name="widget", version="1.2.3")

    ingestion_service.extractor = ReplayingExtractor()
    writes_before = total_writes(repos)
    with pytest.raises(DuplicatePackageError) as excinfo:
        ingest(ingestion_service, archive)
    assert excinfo.value.status_code == 409
    assert total_writes(repos) == writes_before


def test_metadata_write_failure_is_a_persistence_error(ingestion_service, repos):
    async def broken_create(entity):
        raise PyMongoError("write concern failed")

    repos.metadata.create = broken_create
    with pytest.raises(PersistenceError):
        ingest(ingestion_service, make_package_zip())
    assert repos.history.writes == []


def test_unknown_user_fails_history_step(ingestion_service, repos):
    with pytest.raises(PersistenceError):
        ingest(ingestion_service, make_package_zip(), user_id=999)
    assert repos.history.writes == []


def test_compute_rating_is_deterministic(ingestion_service, repos):
    repos.github.signals = RepositorySignals(stars=10, forks=2, license="ISC", closed_issues=3)
    first = asyncio.run(ingestion_service.compute_rating("acme", "widget"))
    second = asyncio.run(ingestion_service.compute_rating("acme", "widget"))
    assert first == second


def test_compute_rating_times_out(repos):
    class SlowGitHubClient:
        def fetch_signals(self, owner, repo):
            time.sleep(0.5)
            return RepositorySignals(stars=0, forks=0)

    service = PackageIngestionService(
        repos.metadata, repos.data, repos.history, repos.rating, repos.user,
        repos.archive, SlowGitHubClient(), scoring_timeout=0.05,
    )
    with pytest.raises(UpstreamFetchError):
        asyncio.run(service.compute_rating("acme", "widget"))


def seed_versions(service, name, versions):
    for version in versions:
        ingest(service, make_package_zip(name=name, version=version))


def test_find_packages_by_range(ingestion_service):
    seed_versions(ingestion_service, "widget", ["1.0.0", "1.5.0", "2.0.0", "10.0.0"])
    seed_versions(ingestion_service, "gadget", ["1.2.0"])

    found = asyncio.run(ingestion_service.find_packages("widget", "^1.0.0"))
    assert [m.version for m in found] == ["1.0.0", "1.5.0"]

    found = asyncio.run(ingestion_service.find_packages("*", ">=1.0.0 <=2.0.0"))
    assert [(m.name, m.version) for m in found] == [
        ("gadget", "1.2.0"), ("widget", "1.0.0"), ("widget", "1.5.0"), ("widget", "2.0.0"),
    ]


def test_find_packages_pages(ingestion_service, repos):
    seed_versions(ingestion_service, "widget", [f"1.{minor}.0" for minor in range(12)])

    first = asyncio.run(ingestion_service.find_packages("widget", "1.x", offset=1))
    second = asyncio.run(ingestion_service.find_packages("widget", "1.x", offset=2))
    assert len(first) == 10
    assert [m.version for m in second] == ["1.10.0", "1.11.0"]

    below_one = asyncio.run(ingestion_service.find_packages("widget", "1.x", offset=0))
    assert below_one == first
    assert repos.metadata.range_calls[-1][2] == 1


def test_find_packages_invalid_range(ingestion_service):
    with pytest.raises(InvalidRangeError):
        asyncio.run(ingestion_service.find_packages("widget", "*"))


def test_find_packages_timeout_returns_none(ingestion_service, repos):
    repos.metadata.fail_queries = True
    assert asyncio.run(ingestion_service.find_packages("widget", "1.2.3")) is None
