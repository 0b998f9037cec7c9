"""
Shared fixtures for pluginrepo tests.

FakeSession stands in for requests.Session: responses are queued per URL
and handed out in order, so retry and pagination paths can be scripted.
"""

import io
import json
import zipfile
from pathlib import Path

import pytest
import requests


class FakeResponse:
    """Minimal streaming response."""

    def __init__(self, status_code=200, body=b"", headers=None, json_data=None,
                 chunk_size=4, fail_after=None):
        self.status_code = status_code
        self.headers = dict(headers or {})
        self._json = json_data
        self._body = body
        self._chunk_size = chunk_size
        self._fail_after = fail_after
        self.closed = False
        if json_data is not None and not body:
            self._body = json.dumps(json_data).encode()

    def json(self):
        if self._json is None:
            return json.loads(self._body.decode())
        return self._json

    def iter_content(self, chunk_size=1):
        sent = 0
        for i in range(0, len(self._body), self._chunk_size):
            if self._fail_after is not None and sent >= self._fail_after:
                raise requests.ConnectionError("connection reset")
            chunk = self._body[i:i + self._chunk_size]
            sent += len(chunk)
            yield chunk

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeSession:
    """requests.Session double with per-URL response queues."""

    def __init__(self, routes=None):
        self.headers = {}
        self.routes = {}
        self.calls = []
        self.closed = False
        for url, responses in (routes or {}).items():
            self.add(url, responses)

    def add(self, url, responses):
        if not isinstance(responses, list):
            responses = [responses]
        self.routes.setdefault(url, []).extend(responses)

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        queue = self.routes.get(url)
        if not queue:
            return FakeResponse(status_code=404)
        # The last response repeats once the queue runs dry
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def urls(self):
        return [url for url, _ in self.calls]

    def close(self):
        self.closed = True


def make_zip(path: Path, members: dict) -> Path:
    """Write a zip whose entries are ``{name: bytes | str}``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, 'w') as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def zip_bytes(members: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


WIDGETS_MANIFEST = {
    "name": "widgets",
    "version": "1.2.0",
    "description": "Widget tools",
    "author": "acme",
    "tools": [
        {
            "name": "make_widget",
            "description": "Make a widget",
            "parameters": {"type": "object", "properties": {"size": {"type": "integer"}}},
            "is_streaming": False,
        },
        {"name": "stream_widgets", "description": "Stream widgets", "is_streaming": True},
    ],
}


def release_payload(tag, assets, name=None, published_at="2024-05-01T12:00:00Z"):
    """One release object as returned by the GitHub API."""
    return {
        "tag_name": tag,
        "name": name if name is not None else f"Release {tag}",
        "published_at": published_at,
        "draft": False,
        "prerelease": False,
        "assets": [
            {
                "name": asset_name,
                "browser_download_url": f"https://github.com/acme/widgets/releases/download/{tag}/{asset_name}",
                "size": size,
                "content_type": "application/zip",
            }
            for asset_name, size in assets
        ],
    }


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def widgets_zip():
    """Archive with one Windows plugin and its manifest."""
    return zip_bytes({
        "widgets.dll": b"MZ fake windows binary",
        "widgets_tools.json": json.dumps(WIDGETS_MANIFEST),
    })


PACKAGE_NAME = "widgets_v1.2.0_1714564800.zip"


@pytest.fixture
def built_repo(tmp_path):
    """A repository root holding one processed tag and its package file."""
    root = tmp_path / "plugin_repo"
    package = root / "v1.2.0" / "windows" / PACKAGE_NAME
    make_zip(package, {"widgets.dll": b"MZ", "widgets_tools.json": json.dumps(WIDGETS_MANIFEST)})
    document = {
        "tag_name": "v1.2.0",
        "name": "Release v1.2.0",
        "published_at": "2024-05-01T12:00:00Z",
        "assets": [],
        "plugin_packages": {
            "acme_widgets": {
                "name": "widgets",
                "version": "1.2.0",
                "tag_name": "v1.2.0",
                "local_path": str(package),
                "platform": "windows",
            },
        },
    }
    (root / "v1.2.0.json").write_text(json.dumps(document))
    return root
