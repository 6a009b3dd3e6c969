import pytest

from helpers import create_test_repo
from scanhub.infra.workspace import Workspace


class FakeResponse:
    def __init__(self, status_code: int, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = dict(headers or {})
        self.ok = status_code < 400
        self.text = "" if payload is None else str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """requests.Session stand-in answering from a url -> (status, payload[, headers]) table."""

    def __init__(self, routes=None, error: Exception | None = None):
        self.routes = dict(routes or {})
        self.error = error
        self.calls = []
        self.posts = []

    def _answer(self, url):
        if self.error is not None:
            raise self.error
        status, payload, *rest = self.routes.get(url, (404, {"message": "Not Found"}))
        return FakeResponse(status, payload, rest[0] if rest else None)

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers or {}, "params": params, "timeout": timeout})
        return self._answer(url)

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers or {}, "timeout": timeout})
        return self._answer(url)

    def close(self):
        pass


@pytest.fixture
def fake_session_cls():
    return FakeSession


@pytest.fixture
def workspace(tmp_path):
    return Workspace(base_dir=tmp_path / "ws")


@pytest.fixture
def origin(tmp_path):
    """A local repository with a README and one source file."""
    repo, commit = create_test_repo(
        tmp_path / "origin",
        {
            "README.md": "# Demo project for scanning\n\nMore text.\n",
            "app.py": "print('v1')\n",
        },
    )
    return repo, commit
