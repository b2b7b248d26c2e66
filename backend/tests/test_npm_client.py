import pytest
import requests

from services.errors import UpstreamFetchError, UpstreamParseError
from services.npm_client import NpmRegistryClient


class StubPageSession:
    def __init__(self, text="", error=None, status_code=200):
        self.text = text
        self.error = error
        self.status_code = status_code
        self.headers = {}

    def get(self, url, timeout=None):
        if self.error is not None:
            raise self.error
        return self

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def npm_client(monkeypatch):
    client = NpmRegistryClient()

    def use_session(session):
        monkeypatch.setattr(client, "_session", session)
        return client

    return use_session


def test_singleton():
    assert NpmRegistryClient() is NpmRegistryClient()


@pytest.mark.parametrize("url,name", [
    ("https://www.npmjs.com/package/widget", "widget"),
    ("https://www.npmjs.com/package/@acme/widget?activeTab=readme", "@acme/widget"),
    ("https://www.npmjs.com/search?q=widget", None),
])
def test_package_name_from_url(url, name):
    assert NpmRegistryClient.package_name_from_url(url) == name


def test_resolve_github_url(npm_client):
    page = '<a href="https://github.com/acme/widget.git" aria-labelledby="repository">Repository</a>'
    client = npm_client(StubPageSession(text=page))
    assert client.resolve_github_url("https://www.npmjs.com/package/widget") == "https://github.com/acme/widget"


def test_page_without_github_link(npm_client):
    client = npm_client(StubPageSession(text="<html>no repository here</html>"))
    with pytest.raises(UpstreamParseError):
        client.resolve_github_url("https://www.npmjs.com/package/widget")


@pytest.mark.parametrize("session", [
    StubPageSession(error=requests.Timeout("slow")),
    StubPageSession(status_code=404),
])
def test_unreachable_page(npm_client, session):
    with pytest.raises(UpstreamFetchError):
        npm_client(session).resolve_github_url("https://www.npmjs.com/package/widget")
