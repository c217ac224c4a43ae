"""Single-file reads at a pinned commit."""

import hashlib
import logging

from gitproxy.errors import BinaryContentError, InvalidInputError
from gitproxy.models import FileContent

logger = logging.getLogger(__name__)


def normalize_repo_path(path: str | None, required: bool = False) -> str:
    """Clean a user supplied repository path.

    Leading/trailing slashes and ``./`` segments are dropped; ``..`` segments
    and control characters are rejected.
    """
    s = (path or "").strip().replace("\\", "/")
    if "\x00" in s:
        raise InvalidInputError("Malformed path: contains NUL")
    parts = []
    for part in s.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise InvalidInputError(f"Malformed path: {path!r}")
        parts.append(part)
    clean = "/".join(parts)
    if required and not clean:
        raise InvalidInputError("Missing path")
    return clean


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def git_blob_sha(data: bytes) -> str:
    """Object id git assigns to ``data`` stored as a blob."""
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()


def decode_text(path: str, data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    if "\x00" in text:
        raise BinaryContentError(f"Binary file not supported: {path}")
    return text


async def fetch_file(provider, owner, repo, commit_sha, path) -> FileContent:
    data = await provider.get_raw_file(owner, repo, path, commit_sha)
    text = decode_text(path, data)
    return FileContent(
        path=path,
        text=text,
        blob_sha=git_blob_sha(data),
        size=len(data),
        sha256=sha256_hex(text),
    )
