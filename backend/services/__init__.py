"""
Services layer for the package registry.
"""

from .errors import RegistryError
from .version_range import VersionRange, resolve_version_range, version_sort_key, is_pinned
from .archive_extractor import ArchiveExtractor, RepositoryRef, parse_repository_url
from .npm_client import NpmRegistryClient
from .github_client import GitHubApiClient, RepoStats, RepositorySignals
from .rating_scorer import RatingScorer, RatingScores

__all__ = [
    "RegistryError",
    "VersionRange",
    "resolve_version_range",
    "version_sort_key",
    "is_pinned",
    "ArchiveExtractor",
    "RepositoryRef",
    "parse_repository_url",
    "NpmRegistryClient",
    "GitHubApiClient",
    "RepoStats",
    "RepositorySignals",
    "RatingScorer",
    "RatingScores",
]
