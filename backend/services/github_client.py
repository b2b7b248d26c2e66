"""
GitHub API client for repository signals.
"""

import base64
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests

import env
from services.archive_extractor import parse_repository_url
from services.errors import InvalidRepositoryUrlError, UpstreamFetchError, UpstreamParseError
from services.npm_client import NpmRegistryClient


@dataclass
class RepoStats:
    """Popularity counters for a repository."""

    stars: int
    forks: int


@dataclass
class RepositorySignals:
    """Raw inputs for the rating sub-scores. Fetched fresh, never stored."""

    stars: int
    forks: int
    license: Optional[str] = None  # SPDX id
    open_issues: int = 0
    closed_issues: int = 0
    contributor_commits: List[int] = field(default_factory=list)
    readme_size: int = 0
    days_since_last_push: Optional[int] = None
    avg_issue_close_days: Optional[float] = None
    merged_pull_requests: int = 0
    reviewed_pull_requests: int = 0
    dependencies: Dict[str, str] = field(default_factory=dict)


class GitHubApiClient:
    """Client for GitHub API interactions."""

    BASE_URL = "https://api.github.com"
    CLOSED_ISSUE_SAMPLE = 50

    def __init__(
        self,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        npm_client: Optional[NpmRegistryClient] = None,
        timeout: Optional[float] = None,
    ):
        self._token = token or env.GITHUB_PAT
        self._timeout = timeout or env.UPSTREAM_TIMEOUT_SECONDS
        self._npm_client = npm_client
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": "PackageRegistry/1.0",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        if self._token:
            self._session.headers["Authorization"] = f"Bearer {self._token}"

    def _get(self, path: str, params: Optional[dict] = None, optional: bool = False):
        """
        GET a GitHub API path and decode the JSON body.

        Args:
            path: API path starting with '/'
            params: Query parameters
            optional: Return None on 404 instead of raising

        Raises:
            UpstreamFetchError: Network failure or non-2xx response
            UpstreamParseError: Body is not JSON
        """
        url = f"{self.BASE_URL}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
            if optional and response.status_code == 404:
                return None
            response.raise_for_status()
            # Empty repositories answer the contributors listing with 204
            if response.status_code == 204:
                return None
        except requests.RequestException as e:
            print(f"[github_client] ERROR: GET {path} failed: {e}")
            raise UpstreamFetchError(f"GitHub request {path} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamParseError(f"GitHub response for {path} is not JSON") from e

    def _search_count(self, query: str) -> int:
        data = self._get("/search/issues", params={"q": query, "per_page": 1})
        if not isinstance(data, dict) or "total_count" not in data:
            raise UpstreamParseError(f"Unexpected search response for '{query}'")
        return int(data["total_count"])

    def get_repo_stats(self, owner: str, repo: str) -> RepoStats:
        """
        Fetch star and fork counts.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            RepoStats
        """
        data = self._get(f"/repos/{owner}/{repo}")
        try:
            return RepoStats(stars=int(data["stargazers_count"]), forks=int(data["forks_count"]))
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamParseError(f"Unexpected repository response for {owner}/{repo}") from e

    def get_package_popularity(self, url: str) -> RepoStats:
        """
        Star and fork counts for a GitHub URL or an npm package page URL.

        npm URLs are resolved to their GitHub repository first.
        """
        if "npmjs.com" in url:
            npm_client = self._npm_client or NpmRegistryClient()
            url = npm_client.resolve_github_url(url)

        ref = parse_repository_url(url)
        if ref is None:
            raise InvalidRepositoryUrlError(url)
        return self.get_repo_stats(ref.owner, ref.repo)

    def fetch_signals(self, owner: str, repo: str) -> RepositorySignals:
        """
        Fetch every signal the rating needs.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            RepositorySignals
        """
        data = self._get(f"/repos/{owner}/{repo}")
        if not isinstance(data, dict) or "stargazers_count" not in data:
            raise UpstreamParseError(f"Unexpected repository response for {owner}/{repo}")

        slug = f"{owner}/{repo}"
        license_info = data.get("license") or {}
        spdx_id = license_info.get("spdx_id")

        signals = RepositorySignals(
            stars=int(data.get("stargazers_count", 0)),
            forks=int(data.get("forks_count", 0)),
            license=spdx_id if spdx_id and spdx_id != "NOASSERTION" else None,
            days_since_last_push=self._days_since(data.get("pushed_at")),
        )

        signals.contributor_commits = self._fetch_contributor_commits(owner, repo)
        signals.readme_size = self._fetch_readme_size(owner, repo)
        signals.open_issues = self._search_count(f"repo:{slug} type:issue state:open")
        signals.closed_issues = self._search_count(f"repo:{slug} type:issue state:closed")
        signals.avg_issue_close_days = self._fetch_avg_issue_close_days(owner, repo)
        signals.merged_pull_requests = self._search_count(f"repo:{slug} type:pr is:merged")
        signals.reviewed_pull_requests = self._search_count(
            f"repo:{slug} type:pr is:merged review:approved"
        )
        signals.dependencies = self._fetch_dependencies(owner, repo)

        print(
            f"[github_client] Fetched signals for {slug}: "
            f"{signals.stars} stars, {signals.forks} forks, license={signals.license}"
        )
        return signals

    @staticmethod
    def _days_since(timestamp: Optional[str]) -> Optional[int]:
        if not timestamp:
            return None
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        return max(0, (datetime.now(timezone.utc) - moment).days)

    def _fetch_contributor_commits(self, owner: str, repo: str) -> List[int]:
        """Commit counts per contributor, largest first."""
        contributors = self._get(
            f"/repos/{owner}/{repo}/contributors", params={"per_page": 100}, optional=True
        )
        if not isinstance(contributors, list):
            return []
        return sorted(
            (int(c.get("contributions", 0)) for c in contributors if isinstance(c, dict)),
            reverse=True,
        )

    def _fetch_readme_size(self, owner: str, repo: str) -> int:
        readme = self._get(f"/repos/{owner}/{repo}/readme", optional=True)
        if not isinstance(readme, dict):
            return 0
        return int(readme.get("size", 0))

    def _fetch_avg_issue_close_days(self, owner: str, repo: str) -> Optional[float]:
        """Average days from open to close over the most recently closed issues."""
        issues = self._get(
            f"/repos/{owner}/{repo}/issues",
            params={"state": "closed", "per_page": self.CLOSED_ISSUE_SAMPLE},
            optional=True,
        )
        if not isinstance(issues, list):
            return None

        durations = []
        for issue in issues:
            # The issues endpoint also lists pull requests
            if not isinstance(issue, dict) or "pull_request" in issue:
                continue
            if not issue.get("created_at") or not issue.get("closed_at"):
                continue
            opened = datetime.fromisoformat(issue["created_at"].replace("Z", "+00:00"))
            closed = datetime.fromisoformat(issue["closed_at"].replace("Z", "+00:00"))
            durations.append((closed - opened).total_seconds() / 86400)

        if not durations:
            return None
        return sum(durations) / len(durations)

    def _fetch_dependencies(self, owner: str, repo: str) -> Dict[str, str]:
        """Runtime dependencies declared in the repository's own package.json."""
        content = self._get(f"/repos/{owner}/{repo}/contents/package.json", optional=True)
        if not isinstance(content, dict) or content.get("encoding") != "base64":
            return {}

        try:
            manifest = json.loads(base64.b64decode(content.get("content", "")).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            print(f"[github_client] WARNING: Unreadable package.json in {owner}/{repo}: {e}")
            return {}

        dependencies = manifest.get("dependencies") if isinstance(manifest, dict) else None
        if not isinstance(dependencies, dict):
            return {}
        return {name: spec for name, spec in dependencies.items() if isinstance(spec, str)}
