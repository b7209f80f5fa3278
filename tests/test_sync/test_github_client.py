"""
Tests for yield_forecaster/sync/github_client.py.

All HTTP traffic goes through ``httpx.MockTransport``; no network access.

What we test
------------
- fetch() decodes the base64 JSON document and validates its shape.
- publish() creates a new file (no sha) or updates one (current sha).
- Non-2xx responses and transport errors surface as SyncError.
- Missing owner/repo or token are rejected before any request.
"""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from yield_forecaster.config import SyncConfig
from yield_forecaster.exceptions import SyncError
from yield_forecaster.sync.github_client import GitHubSyncClient

CONFIG = SyncConfig(owner="acme", repo="models", token="ghp_test", branch="data")
CONTENTS_PATH = "/repos/acme/models/contents/public/data/model_result.json"
BUNDLE = {"recall": {"model": None, "data": [{"collection_days": 3.0, "notes": 10.0}]}}


def _encoded(payload) -> str:
    raw = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    # GitHub wraps base64 content at 60 characters
    return "\n".join(raw[i:i + 60] for i in range(0, len(raw), 60))


def _client(handler, config: SyncConfig = CONFIG) -> GitHubSyncClient:
    return GitHubSyncClient(config, transport=httpx.MockTransport(handler))


# ── fetch ─────────────────────────────────────────────────────────────────────

class TestFetch:
    def test_decodes_bundle(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"sha": "abc", "content": _encoded(BUNDLE)})

        with _client(handler) as client:
            assert client.fetch() == BUNDLE

        assert seen[0].method == "GET"
        assert seen[0].url.path == CONTENTS_PATH
        assert seen[0].url.params["ref"] == "data"
        assert seen[0].headers["Authorization"] == "Bearer ghp_test"

    def test_http_error_status(self):
        with _client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(SyncError, match="404"):
                client.fetch()

    def test_payload_must_be_object(self):
        def handler(request):
            return httpx.Response(200, json={"sha": "abc", "content": _encoded([1, 2])})

        with _client(handler) as client:
            with pytest.raises(SyncError):
                client.fetch()

    def test_invalid_json(self):
        content = base64.b64encode(b"not json").decode("ascii")

        def handler(request):
            return httpx.Response(200, json={"sha": "abc", "content": content})

        with _client(handler) as client:
            with pytest.raises(SyncError):
                client.fetch()

    def test_transport_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with pytest.raises(SyncError):
                client.fetch()


# ── publish ───────────────────────────────────────────────────────────────────

class TestPublish:
    def _handler(self, existing_sha, puts, put_status=201):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                if existing_sha is None:
                    return httpx.Response(404, json={"message": "Not Found"})
                return httpx.Response(200, json={"sha": existing_sha, "content": ""})
            puts.append(json.loads(request.content))
            return httpx.Response(put_status, json={"content": {"sha": "new-sha"}})

        return handler

    def test_creates_new_file(self):
        puts = []
        with _client(self._handler(None, puts)) as client:
            assert client.publish(BUNDLE, message="first") == "new-sha"

        body = puts[0]
        assert "sha" not in body
        assert body["message"] == "first"
        assert body["branch"] == "data"
        assert json.loads(base64.b64decode(body["content"])) == BUNDLE

    def test_updates_existing_file(self):
        puts = []
        with _client(self._handler("old-sha", puts)) as client:
            client.publish(BUNDLE)
        assert puts[0]["sha"] == "old-sha"

    def test_put_failure(self):
        with _client(self._handler(None, [], put_status=409)) as client:
            with pytest.raises(SyncError, match="409"):
                client.publish(BUNDLE)

    def test_lookup_failure(self):
        with _client(lambda request: httpx.Response(500)) as client:
            with pytest.raises(SyncError, match="500"):
                client.publish(BUNDLE)

    def test_requires_token(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        config = CONFIG.model_copy(update={"token": None})
        with _client(handler, config) as client:
            with pytest.raises(SyncError, match="token"):
                client.publish(BUNDLE)
        assert calls == []


# ── Construction ──────────────────────────────────────────────────────────────

class TestConstruction:
    def test_requires_owner_and_repo(self):
        with pytest.raises(SyncError):
            GitHubSyncClient(SyncConfig())

    def test_no_auth_header_without_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"content": _encoded({})})

        config = CONFIG.model_copy(update={"token": None})
        with _client(handler, config) as client:
            assert client.fetch() == {}
        assert "Authorization" not in seen[0].headers
