"""
media/uploader.py -- Upload staged images to object storage (Cloudinary).

Contract: upload(local_path) returns the hosted URL, or None on any failure.
Whatever happens, the local temp file is deleted exactly once as part of the
call. Callers never clean up after upload() themselves.

The Cloudinary REST upload endpoint is called with requests; no SDK and no
process-wide client configuration. Credentials arrive through StorageConfig,
built once at startup by api/main.py.

Signed upload: the request carries api_key, timestamp and
signature = SHA1("timestamp=<ts>" + api_secret). resource_type "auto" lets
Cloudinary accept any image or video format.

The HTTP call blocks, so upload() runs it in the threadpool.

Layer rule: no imports from api/ or auth/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import logging
import time
from pathlib import Path
from typing import Protocol

import requests
from starlette.concurrency import run_in_threadpool

from core.config import StorageConfig

logger = logging.getLogger("videohub.media")

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"


class AssetUploader(Protocol):
    """What RegistrationService needs from an object-storage backend."""

    async def upload(self, local_path: Path) -> str | None:
        """Upload the file, delete it locally, and return its URL (None on failure)."""
        ...

    def discard(self, local_path: Path) -> None:
        """Delete a staged file that will never be uploaded."""
        ...


class CloudinaryUploader:
    """AssetUploader backed by Cloudinary's signed upload API.

    Usage:
        uploader = CloudinaryUploader(StorageConfig.from_settings(get_settings()))
        url = await uploader.upload(Path("public/temp/avatar.png"))
    """

    def __init__(self, config: StorageConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    async def upload(self, local_path: Path) -> str | None:
        try:
            if not self.config.configured:
                logger.warning("Object storage is not configured; rejecting upload of %s", local_path.name)
                return None
            return await run_in_threadpool(self._post, local_path)
        except (requests.RequestException, OSError, ValueError, KeyError) as e:
            logger.warning("Upload of %s failed: %s", local_path.name, e)
            return None
        finally:
            self.discard(local_path)

    def discard(self, local_path: Path) -> None:
        try:
            local_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temp file %s: %s", local_path, e)

    def _post(self, local_path: Path) -> str:
        timestamp = str(int(time.time()))
        signature = hashlib.sha1(f"timestamp={timestamp}{self.config.api_secret}".encode()).hexdigest()  # noqa: S324 -- Cloudinary's signing scheme
        with local_path.open("rb") as fh:
            resp = self._session.post(
                CLOUDINARY_UPLOAD_URL.format(cloud_name=self.config.cloud_name),
                data={"api_key": self.config.api_key, "timestamp": timestamp, "signature": signature},
                files={"file": (local_path.name, fh)},
                timeout=self.config.timeout_seconds,
            )
        resp.raise_for_status()
        url = resp.json()["url"]
        logger.info("Uploaded %s (%d bytes)", local_path.name, resp.json().get("bytes", 0))
        return url
