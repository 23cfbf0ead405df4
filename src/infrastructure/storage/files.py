"""Low-level file helpers shared by the file-backed repositories."""

import contextlib
import hashlib
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

# Leaves room for a ".json" suffix and the ".<name>.<random>.tmp" temp file
# within the common 255-byte file name limit.
MAX_NAME_LENGTH = 200

# quote() always escapes "+", so hashed names cannot collide with encoded ones.
HASHED_PREFIX = "+"


def encode_name(value: str) -> str:
    """Encode an arbitrary identifier or tag as a single safe path component.

    Short names are percent-encoded and stay readable. Names whose encoding
    exceeds ``MAX_NAME_LENGTH`` are replaced by their SHA-256 digest; the
    mapping is one-way, so callers needing the original name store it
    inside the file.
    """
    encoded = quote(value, safe="")
    if len(encoded) <= MAX_NAME_LENGTH:
        return encoded
    return HASHED_PREFIX + hashlib.sha256(value.encode("utf-8")).hexdigest()


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers see the old or the new file, never half.

    The bytes go to a temp file in the same directory, are fsynced, then
    renamed over the target.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def read_bytes(path: Path) -> bytes | None:
    """Read a file, or return None if it does not exist."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def remove_file(path: Path) -> bool:
    """Remove a file and return whether it existed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
