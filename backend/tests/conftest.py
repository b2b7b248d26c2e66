"""
Shared fixtures: in-memory repositories that record every write, a fake
archive store, a fake GitHub client and a zip builder.
"""

import io
import itertools
import json
import re
import zipfile
from types import SimpleNamespace

import pytest

import env
from models.package_history import PackageHistoryEntry
from models.user import User
from services.github_client import RepositorySignals
from services.ingestion import PackageIngestionService
from services.package_service import PackageService
from services.version_range import version_sort_key


def make_zip(files: dict) -> bytes:
    """Build a zip archive in memory from {entry name: str | bytes | dict}."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            if isinstance(content, dict):
                content = json.dumps(content)
            archive.writestr(name, content)
    return buffer.getvalue()


def make_package_zip(name="widget", version="1.2.3", repository="github:acme/widget", prefix=""):
    manifest = {"name": name, "version": version}
    if repository is not None:
        manifest["repository"] = repository
    return make_zip({f"{prefix}package.json": manifest, f"{prefix}index.js": "module.exports = 1;\n"})


class FakeRepository:
    """Dict-backed stand-in for BaseRepository; ``writes`` lists mutating calls."""

    def __init__(self):
        self.items = {}
        self.writes = []

    async def create(self, entity):
        self.writes.append(("create", entity))
        self.items[entity.id] = entity
        return entity

    async def find_by_id(self, entity_id):
        return self.items.get(entity_id)


class FakeMetadataRepository(FakeRepository):
    def __init__(self):
        super().__init__()
        self.range_calls = []
        self.fail_queries = False

    async def create(self, entity):
        if entity.version_key is None:
            entity = entity.model_copy(update={"version_key": version_sort_key(entity.version)})
        return await super().create(entity)

    def _sorted(self, items):
        return sorted(items, key=lambda m: (m.name, m.version_key or "", m.id))

    async def find_by_range(self, name, version_range, page, page_size, timeout_seconds):
        self.range_calls.append((name, version_range, page, page_size, timeout_seconds))
        if self.fail_queries:
            return None
        low, high = version_sort_key(version_range.min), version_sort_key(version_range.max)

        def admitted(m):
            key = m.version_key
            above = key >= low if version_range.min_inclusive else key > low
            below = key <= high if version_range.max_inclusive else key < high
            return above and below and (name == "*" or m.name == name)

        matches = self._sorted(m for m in self.items.values() if admitted(m))
        start = (page - 1) * page_size
        return matches[start:start + page_size]

    async def search_by_regex(self, pattern, timeout_seconds, limit=100):
        if self.fail_queries:
            return None
        return self._sorted(m for m in self.items.values() if re.search(pattern, m.name))[:limit]

    async def find_by_name(self, name):
        return self._sorted(m for m in self.items.values() if m.name == name)


class FakeDataRepository(FakeRepository):
    async def set_archive(self, metadata_id, archive_key, archive_id):
        self.writes.append(("set_archive", metadata_id))
        data = self.items.get(metadata_id)
        if data is None:
            return None
        data = data.model_copy(update={"archive_key": archive_key, "archive_id": archive_id})
        self.items[metadata_id] = data
        return data

    async def update_data(self, metadata_id, url, js_program):
        self.writes.append(("update_data", metadata_id))
        data = self.items.get(metadata_id)
        if data is None:
            return None
        data = data.model_copy(update={"url": url, "js_program": js_program})
        self.items[metadata_id] = data
        return data


class FakeHistoryRepository(FakeRepository):
    def __init__(self):
        super().__init__()
        self._ids = itertools.count(1)

    async def exists_for_metadata(self, metadata_id):
        return any(entry.metadata_id == metadata_id for entry in self.items.values())

    async def create_entry(self, metadata_id, user_id, action, date):
        entry = PackageHistoryEntry(
            id=str(next(self._ids)), metadata_id=metadata_id, user_id=user_id, action=action, date=date
        )
        return await self.create(entry)

    async def find_by_metadata_ids(self, metadata_ids):
        entries = [e for e in self.items.values() if e.metadata_id in metadata_ids]
        return sorted(entries, key=lambda e: e.date)

    def actions(self):
        return [entry.action for entry in self.items.values()]


class FakeUserRepository(FakeRepository):
    def __init__(self):
        super().__init__()
        self.items[env.DEFAULT_USER_ID] = User(id=env.DEFAULT_USER_ID, name="admin", is_admin=True)


class FakeArchiveStore:
    def __init__(self):
        self.objects = {}
        self.writes = []
        self.fail = False
        self._ids = itertools.count(1)

    async def put(self, key, data):
        if self.fail:
            raise ConnectionError("object store unavailable")
        receipt = f"{next(self._ids):024x}"
        self.objects[receipt] = (key, data)
        self.writes.append(("put", key))
        return receipt

    async def get(self, receipt):
        found = self.objects.get(receipt)
        return found[1] if found else None

    async def delete(self, receipt):
        self.writes.append(("delete", receipt))
        return self.objects.pop(receipt, None) is not None


class FakeGitHubClient:
    def __init__(self, signals=None, error=None):
        self.signals = signals or RepositorySignals(stars=120, forks=30, license="MIT")
        self.error = error
        self.calls = []

    def fetch_signals(self, owner, repo):
        self.calls.append((owner, repo))
        if self.error is not None:
            raise self.error
        return self.signals


@pytest.fixture
def repos():
    return SimpleNamespace(
        metadata=FakeMetadataRepository(),
        data=FakeDataRepository(),
        history=FakeHistoryRepository(),
        rating=FakeRepository(),
        user=FakeUserRepository(),
        archive=FakeArchiveStore(),
        github=FakeGitHubClient(),
    )


def total_writes(repos) -> int:
    return sum(
        len(store.writes)
        for store in (repos.metadata, repos.data, repos.history, repos.rating, repos.archive)
    )


@pytest.fixture
def ingestion_service(repos):
    return PackageIngestionService(
        metadata_repo=repos.metadata,
        data_repo=repos.data,
        history_repo=repos.history,
        rating_repo=repos.rating,
        user_repo=repos.user,
        archive_store=repos.archive,
        github_client=repos.github,
        scoring_timeout=5,
        range_query_timeout=5,
        page_size=10,
    )


@pytest.fixture
def package_service(repos):
    return PackageService(
        metadata_repo=repos.metadata,
        data_repo=repos.data,
        history_repo=repos.history,
        rating_repo=repos.rating,
        user_repo=repos.user,
        archive_store=repos.archive,
        query_timeout=5,
    )
