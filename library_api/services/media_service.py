from __future__ import annotations

import httpx
from flask import current_app

from library_api.errors import MediaServiceError


class MediaClient:
    """
    Thin HTTP client for the external media store that holds book covers.

    POST /files (multipart "file") -> {"url": ..., "public_id": ...}
    DELETE /files/<public_id>
    """

    def __init__(self, base_url: str = "", api_key: str = "", timeout: float = 10.0,
                 transport: httpx.BaseTransport | None = None):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def init_app(self, app):
        self.base_url = app.config.get("MEDIA_SERVICE_URL", self.base_url)
        self.api_key = app.config.get("MEDIA_SERVICE_API_KEY", self.api_key)
        self.timeout = app.config.get("MEDIA_SERVICE_TIMEOUT", self.timeout)
        app.extensions["media_client"] = self

    def _client(self) -> httpx.Client:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        return httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    def upload(self, filename: str, content: bytes, content_type: str | None = None) -> tuple[str, str]:
        files = {"file": (filename, content, content_type or "application/octet-stream")}
        try:
            with self._client() as client:
                resp = client.post("/files", files=files)
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            current_app.logger.warning(f"[media] upload failed: {e}")
            raise MediaServiceError(f"Failed to upload image: {e}") from e

        if not body.get("url") or not body.get("public_id"):
            raise MediaServiceError("Media service returned no url/public_id")
        return body["url"], body["public_id"]

    def delete(self, public_id: str) -> None:
        try:
            with self._client() as client:
                resp = client.delete(f"/files/{public_id}")
                if resp.status_code == 404:
                    current_app.logger.info(f"[media] {public_id} already gone")
                    return
                resp.raise_for_status()
        except httpx.HTTPError as e:
            current_app.logger.warning(f"[media] delete {public_id} failed: {e}")
            raise MediaServiceError(f"Failed to delete image: {e}") from e


def get_media_client() -> MediaClient:
    return current_app.extensions["media_client"]
