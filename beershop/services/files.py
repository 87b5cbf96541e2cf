"""Upload/download file handling confined to one root directory."""

import logging
import ntpath
import os
import posixpath
import secrets
from dataclasses import dataclass
from pathlib import Path

from beershop.core.errors import (
    ContentTypeMismatch,
    NotFound,
    PathTraversalRejected,
    UnsupportedFileType,
)

logger = logging.getLogger(__name__)

# Extension -> content type the file must sniff as.
ALLOWED_IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

# Leading bytes ("magic numbers") per content type.
IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
)


@dataclass(frozen=True)
class UploadedAsset:
    stored_name: str
    byte_size: int
    content_type: str


def sniff_content_type(data: bytes) -> str | None:
    """Classify data by its signature; None when no allow-listed signature matches."""
    for signature, content_type in IMAGE_SIGNATURES:
        if data.startswith(signature):
            return content_type
    return None


class PathResolver:
    """
    Maps client-supplied file names to paths under ``root``.

    Names carrying any directory component are rejected outright rather than
    stripped, and the final real path is checked against the root so a
    symlink inside the root cannot lead out of it.
    """

    def __init__(self, root: Path | str, allowed_types: dict[str, str] | None = None) -> None:
        self.root = Path(root).resolve()
        self.allowed_types = allowed_types or ALLOWED_IMAGE_TYPES

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def extension_of(self, name: str) -> str:
        """Lower-cased extension of the name's basename; must be allow-listed."""
        base = ntpath.basename(posixpath.basename(name or ""))
        ext = os.path.splitext(base)[1].lower()
        if ext not in self.allowed_types:
            raise UnsupportedFileType()
        return ext

    def content_type_for(self, name: str) -> str:
        return self.allowed_types[self.extension_of(name)]

    def resolve(self, name: str) -> Path:
        """Return the absolute path for ``name`` inside the root, or raise before any file access."""
        if not name or "\x00" in name:
            raise UnsupportedFileType()
        if (
            posixpath.basename(name) != name
            or ntpath.basename(name) != name
            or name in (".", "..")
            or os.path.isabs(name)
        ):
            logger.warning("Rejected file name with a directory component")
            raise PathTraversalRejected()
        self.extension_of(name)
        candidate = Path(os.path.realpath(self.root / name))
        if not candidate.is_relative_to(self.root):
            logger.warning("Rejected file name resolving outside the upload root")
            raise PathTraversalRejected()
        return candidate

    def read(self, name: str) -> bytes:
        path = self.resolve(name)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFound("File not found") from e

    def store_image(self, original_name: str, data: bytes) -> UploadedAsset:
        """
        Persist an uploaded image under a random name.

        Only the extension survives from original_name, and only if the
        content's signature agrees with it.
        """
        ext = self.extension_of(original_name)
        sniffed = sniff_content_type(data)
        if sniffed is None or sniffed != self.allowed_types[ext]:
            logger.warning(
                "Upload content does not match its extension",
                extra={"extension": ext, "sniffed": sniffed},
            )
            raise ContentTypeMismatch()
        stored_name = secrets.token_hex(16) + ext
        path = self.resolve(stored_name)
        with open(path, "xb") as fh:
            fh.write(data)
        return UploadedAsset(stored_name=stored_name, byte_size=len(data), content_type=sniffed)
