"""File handler module: encoding-aware reads and crash-safe byte writes.

All functions are synchronous; the sync engine and shared-file cache call
them through ``run_sync()`` so disk I/O never blocks the event loop.
"""

import os
import shutil
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

# =============================================================================
# File Read
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a text file with automatic encoding detection.

    Design files are often saved by other editors in legacy encodings, so
    the raw bytes are passed through charset-normalizer.  Empty files and
    failed detections fall back to UTF-8.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")

    encoding = result.encoding
    # ascii is a strict subset of utf-8
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(result), encoding)


# =============================================================================
# File Write
# =============================================================================


def write_bytes_atomic(path: Path, content: bytes) -> int:
    """Write *content* to *path* via a temp file and ``os.replace``.

    Parent directories are created as needed.  Readers never observe a
    half-written file; on failure the temp file is removed and the
    original (if any) is left untouched.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(content)


def copy_if_absent(src: Path, dst: Path) -> bool:
    """Copy *src* to *dst* unless *dst* already exists.

    Returns:
        ``True`` if a copy was made.
    """
    if not src.exists() or dst.exists():
        return False
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)
    return True
