from __future__ import annotations

import json
import logging
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union
from urllib.parse import urljoin

import requests

from packbuilder.core.errors import RegistryError

from .image import (
    MEDIA_TYPE_MANIFEST,
    MEDIA_TYPE_MANIFEST_LIST,
    MEDIA_TYPE_OCI_INDEX,
    MEDIA_TYPE_OCI_MANIFEST,
)

_log = logging.getLogger("packbuilder.registry")

# Docker Hub is addressed as index.docker.io but served from registry-1.
_API_HOSTS = {"index.docker.io": "registry-1.docker.io"}

MANIFEST_ACCEPT = ", ".join(
    [MEDIA_TYPE_MANIFEST, MEDIA_TYPE_OCI_MANIFEST, MEDIA_TYPE_MANIFEST_LIST, MEDIA_TYPE_OCI_INDEX]
)


class RegistryClient:
    """Anonymous client for the registry HTTP API v2."""

    def __init__(
        self,
        registry: str,
        *,
        insecure: bool = False,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
    ):
        self.registry = registry
        scheme = "http" if insecure else "https"
        self.base_url = f"{scheme}://{_API_HOSTS.get(registry, registry)}"
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, url: str, *, allow_404: bool = False, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise RegistryError(f"{method} {url} failed: {exc}") from exc

        if allow_404 and resp.status_code == 404:
            return resp
        if resp.status_code >= 400:
            body = (resp.text or "")[:300]
            raise RegistryError(f"{method} {url} failed: HTTP {resp.status_code} {body}".rstrip())
        return resp

    def get_manifest(self, repository: str, reference: str) -> Optional[Tuple[Dict[str, Any], str]]:
        """Return (manifest, media_type), or None when the registry reports 404."""
        url = self._url(f"/v2/{repository}/manifests/{reference}")
        resp = self._request("GET", url, allow_404=True, headers={"Accept": MANIFEST_ACCEPT})
        if resp.status_code == 404:
            return None
        try:
            manifest = json.loads(resp.content.decode("utf-8"))
        except ValueError as exc:
            raise RegistryError(f"GET {url}: invalid manifest JSON: {exc}") from exc
        media_type = manifest.get("mediaType") or resp.headers.get("Content-Type", "")
        return manifest, media_type.split(";", 1)[0].strip()

    def get_blob(self, repository: str, digest: str) -> bytes:
        return self._request("GET", self._url(f"/v2/{repository}/blobs/{digest}")).content

    def open_blob(self, repository: str, digest: str) -> BinaryIO:
        resp = self._request("GET", self._url(f"/v2/{repository}/blobs/{digest}"), stream=True)
        # keep the stored (compressed) bytes; digests are computed over them
        resp.raw.decode_content = False
        return resp.raw

    def blob_exists(self, repository: str, digest: str) -> bool:
        resp = self._request("HEAD", self._url(f"/v2/{repository}/blobs/{digest}"), allow_404=True)
        return resp.status_code != 404

    def upload_blob(self, repository: str, digest: str, data: Union[bytes, BinaryIO], size: int) -> None:
        start_url = self._url(f"/v2/{repository}/blobs/uploads/")
        resp = self._request("POST", start_url)
        location = resp.headers.get("Location")
        if not location:
            raise RegistryError(f"POST {start_url}: registry returned no upload location")

        upload_url = urljoin(self.base_url + "/", location)
        self._request(
            "PUT",
            upload_url,
            params={"digest": digest},
            data=data,
            headers={"Content-Type": "application/octet-stream", "Content-Length": str(size)},
        )
        _log.debug("uploaded blob %s to %s/%s", digest, self.registry, repository)

    def put_manifest(self, repository: str, reference: str, body: bytes, media_type: str) -> str:
        url = self._url(f"/v2/{repository}/manifests/{reference}")
        resp = self._request("PUT", url, data=body, headers={"Content-Type": media_type})
        return resp.headers.get("Docker-Content-Digest", "")
