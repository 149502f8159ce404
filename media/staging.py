"""
media/staging.py -- Copy multipart uploads into the local temp directory.

Registration works on local file paths (the uploader streams from disk), so
each incoming UploadFile is written to UPLOAD_TEMP_DIR under a random name
that keeps the original extension. The random name prevents two concurrent
requests uploading "avatar.png" from clobbering each other and keeps
client-supplied names out of filesystem paths.

Size guard: read up to max_bytes + 1; anything larger is rejected before a
file is written.

Layer rule: no imports from api/ or auth/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from core.errors import ApiError
from core.result import Err, Ok, Result

logger = logging.getLogger("videohub.media")

# Extensions are kept only if they look like one; anything else is dropped.
_MAX_SUFFIX_LENGTH = 10


def first_upload(files: list[UploadFile] | None) -> UploadFile | None:
    """Multipart fields may repeat; only the first file of a field is used."""
    if not files:
        return None
    first = files[0]
    return first if first.filename else None


async def stage_upload(
    upload: UploadFile | None, temp_dir: Path, max_bytes: int, *, field: str
) -> Result[Path | None]:
    """Write one upload to temp_dir and return its path (Ok(None) if no file)."""
    if upload is None:
        return Ok(None)

    raw = await upload.read(max_bytes + 1)
    if len(raw) > max_bytes:
        return Err(
            ApiError.validation(
                f"{field} exceeds the upload limit of {max_bytes} bytes",
                field=field,
            )
        )

    suffix = Path(upload.filename or "").suffix.lower()
    if len(suffix) > _MAX_SUFFIX_LENGTH or not suffix[1:].isalnum():
        suffix = ""
    path = temp_dir / f"{uuid.uuid4().hex}{suffix}"
    await run_in_threadpool(_write, path, raw)
    logger.debug("Staged %s as %s", upload.filename, path.name)
    return Ok(path)


def _write(path: Path, raw: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(raw)
