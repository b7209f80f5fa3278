"""
GitHub contents API client for publishing and fetching backup bundles.

The bundle lives as one JSON file in a repository (``SyncConfig.path`` on
``SyncConfig.branch``), so a deployed copy of the app can pull the latest
trained models without retraining.

Endpoints (``{api}/repos/{owner}/{repo}/contents/{path}``):
  GET  ?ref={branch}  → {"sha": "...", "content": "<base64>", ...}
  PUT  body {message, content (base64), branch, sha?}
       ``sha`` must be the current blob sha when the file already exists.

Credential setup (.env, gitignored):
  YIELD_FORECASTER_GITHUB_TOKEN=ghp_...

Any non-2xx response raises ``SyncError`` carrying the status code.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional

import httpx

from yield_forecaster.config import SyncConfig
from yield_forecaster.exceptions import SyncError

logger = logging.getLogger(__name__)


class GitHubSyncClient:
    """Publish/fetch a JSON document through the GitHub contents API.

    Usage::

        client = GitHubSyncClient(config.sync)
        client.publish(bundle)
        bundle = client.fetch()

    Tests pass an ``httpx.MockTransport`` as ``transport``.
    """

    def __init__(
        self,
        config: SyncConfig,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ) -> None:
        if not config.owner or not config.repo:
            raise SyncError("Sync target is not configured (set sync.owner and sync.repo).")
        self.config = config
        headers = {"Accept": "application/vnd.github+json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.Client(
            base_url=config.api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def contents_url(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.repo}/contents/{self.config.path}"

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubSyncClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ── Public API ─────────────────────────────────────────────────────────────

    def fetch(self) -> dict[str, Any]:
        """Download and decode the stored bundle.

        Raises:
            SyncError: On non-2xx status or a payload that is not a JSON object.
        """
        resp = self._get_contents()
        if resp.status_code != 200:
            raise SyncError(f"Fetch failed: HTTP {resp.status_code} for {self.config.path}")
        raw = base64.b64decode(resp.json().get("content", ""))
        try:
            payload = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise SyncError(f"Remote bundle is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise SyncError("Remote bundle must be a JSON object keyed by model type.")
        logger.info("Fetched bundle with %d model type(s) from %s", len(payload), self.config.path)
        return payload

    def publish(self, bundle: dict[str, Any], message: str = "Update model bundle") -> str:
        """Create or update the remote bundle file.

        Returns:
            The new blob sha reported by GitHub.

        Raises:
            SyncError: On non-2xx status, or when no token is configured.
        """
        if not self.config.token:
            raise SyncError("Publishing requires a GitHub token (YIELD_FORECASTER_GITHUB_TOKEN).")

        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(
                json.dumps(bundle, ensure_ascii=False).encode("utf-8")
            ).decode("ascii"),
            "branch": self.config.branch,
        }
        sha = self._current_sha()
        if sha is not None:
            body["sha"] = sha

        try:
            resp = self._client.put(self.contents_url, json=body)
        except httpx.HTTPError as exc:
            raise SyncError(f"Request to {self.config.api_url} failed: {exc}") from exc
        if not resp.is_success:
            raise SyncError(f"Publish failed: HTTP {resp.status_code} for {self.config.path}")
        new_sha = resp.json().get("content", {}).get("sha", "")
        logger.info("Published bundle to %s/%s:%s", self.config.owner, self.config.repo, self.config.path)
        return new_sha

    # ── Private helpers ────────────────────────────────────────────────────────

    def _get_contents(self) -> httpx.Response:
        try:
            return self._client.get(self.contents_url, params={"ref": self.config.branch})
        except httpx.HTTPError as exc:
            raise SyncError(f"Request to {self.config.api_url} failed: {exc}") from exc

    def _current_sha(self) -> Optional[str]:
        """Blob sha of the existing file, or None when it does not exist yet."""
        resp = self._get_contents()
        if resp.status_code == 404:
            return None
        if not resp.is_success:
            raise SyncError(f"Lookup failed: HTTP {resp.status_code} for {self.config.path}")
        return resp.json().get("sha")
