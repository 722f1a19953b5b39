"""Upload validation and base64 encoding.

Type and size are checked from metadata before any content is read, so a rejected file
costs nothing. Accepted files must also decode as JPEG or PNG.
"""

import base64
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PIL import Image, UnidentifiedImageError

from pokiface.ai.schema import UploadedImage
from pokiface.core.errors import UploadReadError, UploadRejected

_log = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# Pillow format name -> MIME types it may be declared as.
_FORMAT_MIME_TYPES = {
    "JPEG": {"image/jpeg", "image/jpg"},
    "PNG": {"image/png"},
}

TYPE_ERROR_MESSAGE = "Please upload a JPG or PNG image file"
SIZE_ERROR_MESSAGE = "Image size should be less than 10MB"


@dataclass(frozen=True)
class UploadFile:
    """A candidate file: name, declared MIME type, size, and a reader for its bytes."""

    name: str
    mime_type: str
    size: int
    read: Callable[[], bytes]

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadFile":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise UploadReadError(f"Could not read {path}: {e.strerror or e}") from e
        return cls(name=path.name, mime_type=mime_type or "", size=size, read=path.read_bytes)

    @classmethod
    def from_bytes(cls, name: str, mime_type: str, data: bytes) -> "UploadFile":
        return cls(name=name, mime_type=mime_type, size=len(data), read=lambda: data)


def strip_data_url_prefix(payload: str) -> str:
    """'data:image/png;base64,AAAA' -> 'AAAA'. Plain base64 is returned unchanged."""
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


class UploadHandler:
    def __init__(
        self,
        max_bytes: int = MAX_UPLOAD_BYTES,
        allowed_mime_types: frozenset[str] = ALLOWED_MIME_TYPES,
        verify_content: bool = True,
    ) -> None:
        self._max_bytes = max_bytes
        self._allowed = allowed_mime_types
        self._verify_content = verify_content

    def check(self, file: UploadFile) -> None:
        """Metadata-only validation. Raises UploadRejected with kind 'type' or 'size'."""
        if file.mime_type.lower() not in self._allowed:
            raise UploadRejected(TYPE_ERROR_MESSAGE, kind="type")
        if file.size > self._max_bytes:
            raise UploadRejected(SIZE_ERROR_MESSAGE, kind="size")

    def _read(self, file: UploadFile) -> bytes:
        try:
            return file.read()
        except OSError as e:
            raise UploadReadError(f"Could not read {file.name}: {e.strerror or e}") from e

    def _verify(self, file: UploadFile, data: bytes) -> None:
        try:
            with Image.open(io.BytesIO(data)) as img:
                fmt = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            _log.info("Rejecting %s: not a decodable image (%s)", file.name, e)
            raise UploadRejected(TYPE_ERROR_MESSAGE, kind="type") from e
        if file.mime_type.lower() not in _FORMAT_MIME_TYPES.get(fmt or "", set()):
            _log.info("Rejecting %s: declared %s but content is %s", file.name, file.mime_type, fmt)
            raise UploadRejected(TYPE_ERROR_MESSAGE, kind="type")

    def accept(self, file: UploadFile) -> UploadedImage:
        """Validate file and return it as an UploadedImage."""
        self.check(file)
        data = self._read(file)
        if len(data) > self._max_bytes:
            raise UploadRejected(SIZE_ERROR_MESSAGE, kind="size")
        if self._verify_content:
            self._verify(file, data)
        return UploadedImage(filename=file.name, mime_type=file.mime_type.lower(), data=data)

    def to_base64(self, file: UploadFile | UploadedImage) -> str:
        """Raw base64 payload (no data-URL prefix)."""
        data = file.data if isinstance(file, UploadedImage) else self._read(file)
        return base64.b64encode(data).decode("ascii")
