"""
Zip archive metadata extractor for uploaded packages.
Responsible for locating and decoding package.json, NOT scoring.
"""

import io
import json
import re
import zipfile
from dataclasses import dataclass
from typing import Callable, List, Optional

from models.package_metadata import PackageMetadata
from services.errors import (
    ManifestNotFoundError,
    ManifestParseError,
    MissingFieldError,
    RepositoryUrlNotFoundError,
)

MANIFEST_FILENAME = "package.json"


@dataclass(frozen=True)
class RepositoryRef:
    """GitHub owner/repo pair."""

    owner: str
    repo: str


class ManifestSearch:
    """
    Ordered lookup of the manifest entry inside an archive.

    Strategies run in order and the first hit wins:
    1. exact entry name (``package.json`` at the archive root)
    2. any entry path ending in ``/package.json``, shallowest first,
       so ``widget-main/package.json`` beats ``widget-main/node_modules/x/package.json``
    """

    def __init__(self, filename: str = MANIFEST_FILENAME):
        self.filename = filename
        self.strategies: List[Callable[[List[str]], Optional[str]]] = [
            self.exact_match,
            self.nested_match,
        ]

    def exact_match(self, names: List[str]) -> Optional[str]:
        return self.filename if self.filename in names else None

    def nested_match(self, names: List[str]) -> Optional[str]:
        suffix = f"/{self.filename}"
        matches = [name for name in names if name.endswith(suffix)]
        if not matches:
            return None
        # sorted() is stable, so archive order breaks depth ties
        return sorted(matches, key=lambda name: name.count("/"))[0]

    def find(self, names: List[str]) -> Optional[str]:
        """
        Find the manifest entry.

        Args:
            names: Entry names in archive order (directories excluded)

        Returns:
            Matching entry name or None
        """
        for strategy in self.strategies:
            match = strategy(names)
            if match:
                return match
        return None


class ArchiveExtractor:
    """Extractor for uploaded zip archives - focused on data extraction only."""

    # Maximum archive size to process (50MB)
    MAX_ARCHIVE_SIZE = 50_000_000
    # Maximum uncompressed manifest size (1MB)
    MAX_MANIFEST_SIZE = 1_000_000

    def __init__(self, search: Optional[ManifestSearch] = None):
        self.search = search or ManifestSearch()

    def read_manifest(self, archive_bytes: bytes) -> dict:
        """
        Locate and decode the manifest.

        Args:
            archive_bytes: Raw .zip content

        Returns:
            Decoded package.json object

        Raises:
            ManifestNotFoundError: Empty/unreadable archive or no manifest entry
            ManifestParseError: Manifest is oversized or not a UTF-8 JSON object
        """
        filename = self.search.filename
        if not archive_bytes:
            raise ManifestNotFoundError(filename, "Empty or invalid zip buffer provided")
        if len(archive_bytes) > self.MAX_ARCHIVE_SIZE:
            raise ManifestNotFoundError(
                filename, f"Archive exceeds {self.MAX_ARCHIVE_SIZE} bytes"
            )

        try:
            with zipfile.ZipFile(io.BytesIO(archive_bytes)) as archive:
                names = [info.filename for info in archive.infolist() if not info.is_dir()]
                entry = self.search.find(names)
                if entry is None:
                    print(f"[archive_extractor] {filename} not found inside the zip.")
                    raise ManifestNotFoundError(filename)
                size = archive.getinfo(entry).file_size
                if size > self.MAX_MANIFEST_SIZE:
                    raise ManifestParseError(
                        f"{entry} is {size} bytes, above the {self.MAX_MANIFEST_SIZE} byte limit"
                    )
                raw = archive.read(entry)
        except zipfile.BadZipFile as e:
            print(f"[archive_extractor] ERROR: Failed to open archive: {e}")
            raise ManifestNotFoundError(filename, f"Upload is not a zip archive: {e}") from e

        try:
            manifest = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ManifestParseError(f"Failed to parse {entry}: {e}") from e

        if not isinstance(manifest, dict):
            raise ManifestParseError(f"{entry} is not a JSON object")
        return manifest

    def metadata_from_manifest(self, manifest: dict) -> PackageMetadata:
        """Build a PackageMetadata with a fresh id from a decoded manifest."""
        for field in ("name", "version"):
            if not isinstance(manifest.get(field), str) or not manifest[field].strip():
                raise MissingFieldError(field)
        return PackageMetadata(name=manifest["name"], version=manifest["version"])

    def extract_package_metadata(self, archive_bytes: bytes) -> PackageMetadata:
        """
        Extract name and version; every call generates a new id.

        Args:
            archive_bytes: Raw .zip content

        Returns:
            PackageMetadata
        """
        return self.metadata_from_manifest(self.read_manifest(archive_bytes))

    def extract_repository_url(self, archive_bytes: bytes) -> str:
        """
        Extract the declared repository URL.

        Args:
            archive_bytes: Raw .zip content

        Returns:
            Normalized repository URL
        """
        return repository_url_from_manifest(self.read_manifest(archive_bytes))


def repository_url_from_manifest(manifest: dict) -> str:
    """
    Read ``repository.url`` or a bare ``repository`` string.

    ``github:owner/repo`` shorthand is expanded and a trailing ``.git`` dropped.

    Raises:
        RepositoryUrlNotFoundError: Neither field holds a non-empty string
    """
    repository = manifest.get("repository")
    url = repository.get("url") if isinstance(repository, dict) else repository

    if not url or not isinstance(url, str):
        raise RepositoryUrlNotFoundError("GitHub repository URL not found in package.json")

    url = url.strip()
    if url.startswith("github:"):
        url = f"https://github.com/{url[len('github:'):]}"

    return re.sub(r"\.git$", "", url)


# Handles:
# - https://github.com/owner/repo(.git)
# - git+https://github.com/owner/repo.git
# - git://github.com/owner/repo.git
# - git@github.com:owner/repo.git
# - ssh://git@github.com/owner/repo.git
_GITHUB_URL_RE = re.compile(
    r"github\.com[/:](?P<owner>[^/\s:]+)/(?P<repo>[^/\s#?]+?)(?:\.git)?(?:[/#?].*)?$"
)


def parse_repository_url(url: Optional[str]) -> Optional[RepositoryRef]:
    """
    Parse a GitHub URL into owner/repo.

    Args:
        url: Repository URL string

    Returns:
        RepositoryRef, or None when the URL is not a GitHub owner/repo URL
    """
    if not url:
        return None

    match = _GITHUB_URL_RE.search(url.strip())
    if not match:
        print(f"[archive_extractor] Invalid GitHub URL provided: {url}")
        return None

    return RepositoryRef(owner=match.group("owner"), repo=match.group("repo"))
