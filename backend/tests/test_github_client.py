import base64
import json

import pytest
import requests

from services.errors import InvalidRepositoryUrlError, UpstreamFetchError, UpstreamParseError
from services.github_client import GitHubApiClient, RepoStats


class StubResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class StubSession:
    """Answers GETs from a {path: StubResponse} table; unknown paths are 404."""

    def __init__(self, routes):
        self.routes = routes
        self.headers = {}
        self.requested = []

    def get(self, url, params=None, timeout=None):
        path = url.replace(GitHubApiClient.BASE_URL, "")
        self.requested.append((path, params))
        if path == "/search/issues":
            return self.routes.get(("search", params["q"]), StubResponse(payload={"total_count": 0}))
        route = self.routes.get(path, StubResponse(status_code=404))
        if isinstance(route, Exception):
            raise route
        return route


def repo_routes():
    manifest = {"dependencies": {"lodash": "4.17.21", "chalk": "^5.0.0"}}
    return {
        "/repos/acme/widget": StubResponse(payload={
            "stargazers_count": 120,
            "forks_count": 30,
            "license": {"spdx_id": "MIT"},
            "pushed_at": "2020-01-01T00:00:00Z",
        }),
        "/repos/acme/widget/contributors": StubResponse(payload=[{"contributions": 5}, {"contributions": 50}]),
        "/repos/acme/widget/readme": StubResponse(payload={"size": 2048}),
        "/repos/acme/widget/issues": StubResponse(payload=[
            {"created_at": "2024-01-01T00:00:00Z", "closed_at": "2024-01-03T00:00:00Z"},
            {"created_at": "2024-01-01T00:00:00Z", "closed_at": "2024-01-05T00:00:00Z"},
            {"pull_request": {}, "created_at": "2024-01-01T00:00:00Z", "closed_at": "2024-03-01T00:00:00Z"},
        ]),
        "/repos/acme/widget/contents/package.json": StubResponse(payload={
            "encoding": "base64",
            "content": base64.b64encode(json.dumps(manifest).encode()).decode(),
        }),
        ("search", "repo:acme/widget type:issue state:open"): StubResponse(payload={"total_count": 4}),
        ("search", "repo:acme/widget type:issue state:closed"): StubResponse(payload={"total_count": 16}),
        ("search", "repo:acme/widget type:pr is:merged"): StubResponse(payload={"total_count": 10}),
        ("search", "repo:acme/widget type:pr is:merged review:approved"): StubResponse(payload={"total_count": 7}),
    }


def make_client(routes):
    return GitHubApiClient(token="test-token", session=StubSession(routes))


def test_token_is_sent():
    client = make_client({})
    assert client._session.headers["Authorization"] == "Bearer test-token"


def test_get_repo_stats():
    assert make_client(repo_routes()).get_repo_stats("acme", "widget") == RepoStats(stars=120, forks=30)


def test_fetch_signals():
    signals = make_client(repo_routes()).fetch_signals("acme", "widget")
    assert signals.stars == 120
    assert signals.license == "MIT"
    assert signals.contributor_commits == [50, 5]
    assert signals.readme_size == 2048
    assert (signals.open_issues, signals.closed_issues) == (4, 16)
    assert (signals.merged_pull_requests, signals.reviewed_pull_requests) == (10, 7)
    # Pull requests are excluded from the close-time average
    assert signals.avg_issue_close_days == pytest.approx(3.0)
    assert signals.days_since_last_push > 365
    assert signals.dependencies == {"lodash": "4.17.21", "chalk": "^5.0.0"}


def test_optional_resources_default_on_404():
    routes = repo_routes()
    for path in ("/repos/acme/widget/readme", "/repos/acme/widget/contents/package.json"):
        del routes[path]
    signals = make_client(routes).fetch_signals("acme", "widget")
    assert signals.readme_size == 0
    assert signals.dependencies == {}


def test_missing_repository_is_an_upstream_error():
    with pytest.raises(UpstreamFetchError):
        make_client({}).fetch_signals("acme", "missing")


def test_network_failure_is_an_upstream_error():
    routes = {"/repos/acme/widget": requests.ConnectionError("unreachable")}
    with pytest.raises(UpstreamFetchError):
        make_client(routes).get_repo_stats("acme", "widget")


def test_non_json_body_is_a_parse_error():
    routes = {"/repos/acme/widget": StubResponse(payload=None, text="<html>")}
    with pytest.raises(UpstreamParseError):
        make_client(routes).get_repo_stats("acme", "widget")


def test_package_popularity_from_github_url():
    client = make_client(repo_routes())
    assert client.get_package_popularity("https://github.com/acme/widget.git") == RepoStats(120, 30)


def test_package_popularity_resolves_npm_pages():
    class StubNpm:
        def resolve_github_url(self, url):
            return "https://github.com/acme/widget"

    client = GitHubApiClient(session=StubSession(repo_routes()), npm_client=StubNpm())
    assert client.get_package_popularity("https://www.npmjs.com/package/widget") == RepoStats(120, 30)


def test_package_popularity_rejects_other_hosts():
    with pytest.raises(InvalidRepositoryUrlError):
        make_client({}).get_package_popularity("https://example.com/acme/widget")
