"""
npm registry website client.
"""

import re
from typing import Optional

import requests

import env
from services.errors import UpstreamFetchError, UpstreamParseError


class NpmRegistryClient:
    """
    Client for the npm registry website (singleton).

    This class implements the singleton pattern so every caller shares one
    requests.Session for connection pooling.
    """

    BASE_URL = "https://www.npmjs.com"

    # First github.com/<owner>/<repo> link embedded in the package page
    GITHUB_LINK_RE = re.compile(r"github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)")

    _instance: Optional["NpmRegistryClient"] = None

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the npm client (only runs once due to singleton)."""
        if not hasattr(self, "_initialized"):
            self._session = requests.Session()
            self._session.headers.update(
                {"Accept": "text/html", "User-Agent": "PackageRegistry/1.0"}
            )
            self._initialized = True

    @staticmethod
    def package_name_from_url(npm_url: str) -> Optional[str]:
        """
        Package name from an npm page URL (supports scoped packages).

        Args:
            npm_url: e.g. https://www.npmjs.com/package/@scope/name

        Returns:
            Package name or None
        """
        if "package/" not in npm_url:
            return None
        name = npm_url.split("package/", 1)[1].split("?")[0].split("#")[0].strip("/")
        return name or None

    def resolve_github_url(self, npm_url: str) -> str:
        """
        Resolve an npm package page to its GitHub repository URL.

        Args:
            npm_url: npm package page URL

        Returns:
            https://github.com/<owner>/<repo>

        Raises:
            UpstreamFetchError: Page could not be fetched
            UpstreamParseError: Page holds no GitHub repository link
        """
        try:
            response = self._session.get(npm_url, timeout=env.UPSTREAM_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as e:
            print(f"[npm_client] ERROR: Failed to fetch {npm_url}: {e}")
            raise UpstreamFetchError(f"Failed to fetch {npm_url}: {e}") from e

        match = self.GITHUB_LINK_RE.search(response.text)
        if not match:
            raise UpstreamParseError(f"No GitHub repository link found on {npm_url}")

        owner, repo = match.group(1), re.sub(r"\.git$", "", match.group(2))
        github_url = f"https://github.com/{owner}/{repo}"
        print(f"[npm_client] Resolved {self.package_name_from_url(npm_url)} to {github_url}")
        return github_url
