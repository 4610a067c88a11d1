"""
Binary persistence for the repository index and keyword cache.

File layout::

    [u32 version][body]

Every integer is fixed-width little-endian; strings are a u64 byte length
followed by UTF-8. The record list body is a u64 count followed by
``remote, name, path, last_accessed (u64), accessed (f64)`` per record.
The keyword body is a u64 count followed by ``keyword, expiry (u64)`` pairs.

Files are replaced atomically: contents go to a temporary file in the same
directory which is then renamed over the destination.
"""

import contextlib
import logging
import math
import os
import secrets
import struct
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, TypeVar

from .errors import CorruptData, IoFailure, UnsupportedVersion
from .types import RepoRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATABASE_VERSION = 1
KEYWORDS_VERSION = 1

# Upper bound on a decoded body. Guards against corrupted length fields.
MAX_PAYLOAD_SIZE = 32 << 20  # 32 MiB

TMP_PREFIX = "tmp_"
TMP_NAME_LEN = 16
TMP_MAX_ATTEMPTS = 5
# Renames can fail transiently on Windows while another process holds the file.
RENAME_MAX_ATTEMPTS = 5 if os.name == "nt" else 1

_VERSION = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F64 = struct.Struct("<d")

# Smallest possible encodings, used to reject absurd counts up front
_MIN_RECORD_SIZE = 3 * _U64.size + _U64.size + _F64.size
_MIN_KEYWORD_SIZE = _U64.size + _U64.size


class _Writer:
    def __init__(self) -> None:
        self._buffer = bytearray()

    def u32(self, value: int) -> None:
        self._pack(_VERSION, value)

    def u64(self, value: int) -> None:
        self._pack(_U64, value)

    def f64(self, value: float) -> None:
        self._pack(_F64, value)

    def text(self, value: str) -> None:
        data = value.encode("utf-8")
        self.u64(len(data))
        self._buffer += data

    def _pack(self, fmt: struct.Struct, value) -> None:
        try:
            self._buffer += fmt.pack(value)
        except struct.error as e:
            raise ValueError(f"cannot encode {value!r}: {e}") from e

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class _Reader:
    """Bounds-checked cursor over a byte buffer."""

    def __init__(self, data: bytes, path: Optional[Path] = None) -> None:
        self._data = memoryview(data)
        self._offset = 0
        self._path = path

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def corrupt(self, reason: str) -> CorruptData:
        return CorruptData(f"could not deserialize data: {reason}", self._path)

    def _take(self, size: int) -> memoryview:
        if size > self.remaining:
            raise self.corrupt(
                f"unexpected end of data at offset {self._offset} "
                f"(need {size} bytes, have {self.remaining})"
            )
        chunk = self._data[self._offset:self._offset + size]
        self._offset += size
        return chunk

    def u64(self) -> int:
        return _U64.unpack(self._take(_U64.size))[0]

    def f64(self) -> float:
        return _F64.unpack(self._take(_F64.size))[0]

    def text(self) -> str:
        size = self.u64()
        # bytes() copies out of the input buffer
        raw = bytes(self._take(size))
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise self.corrupt(f"invalid utf-8 string: {e}") from e

    def count(self, min_item_size: int) -> int:
        n = self.u64()
        if n * min_item_size > self.remaining:
            raise self.corrupt(f"item count {n} exceeds available data")
        return n

    def finish(self) -> None:
        if self.remaining:
            raise self.corrupt(f"{self.remaining} trailing bytes")


# -----------------------------------------------------------------------------
# Framing
# -----------------------------------------------------------------------------

def _encode(version: int, write_body: Callable[[_Writer], None]) -> bytes:
    writer = _Writer()
    writer.u32(version)
    write_body(writer)
    return writer.getvalue()


def _decode(
    data: bytes,
    version: int,
    read_body: Callable[[_Reader], T],
    path: Optional[Path],
) -> T:
    """Check the header, then hand the body to ``read_body``.

    The version is validated before the body is looked at.
    """
    if len(data) < _VERSION.size:
        raise CorruptData("could not deserialize data: corrupted data", path)
    found = _VERSION.unpack_from(data, 0)[0]
    if found != version:
        raise UnsupportedVersion(found, version, path)

    body = data[_VERSION.size:]
    if len(body) > MAX_PAYLOAD_SIZE:
        raise CorruptData(
            f"could not deserialize data: payload of {len(body)} bytes "
            f"exceeds limit of {MAX_PAYLOAD_SIZE}",
            path,
        )

    reader = _Reader(body, path)
    result = read_body(reader)
    reader.finish()
    return result


# -----------------------------------------------------------------------------
# Records
# -----------------------------------------------------------------------------

def encode_records(records: Iterable[RepoRecord]) -> bytes:
    """Serialize the record list, header included."""
    records = list(records)

    def write(w: _Writer) -> None:
        w.u64(len(records))
        for record in records:
            w.text(record.remote)
            w.text(record.name)
            w.text(record.path)
            w.u64(record.last_accessed)
            w.f64(float(record.accessed))

    return _encode(DATABASE_VERSION, write)


def decode_records(data: bytes, path: Optional[Path] = None) -> list[RepoRecord]:
    """
    Parse a database file.

    Raises:
        CorruptData: truncated, oversized or malformed input
        UnsupportedVersion: header names a version other than DATABASE_VERSION
    """
    def read(r: _Reader) -> list[RepoRecord]:
        records = []
        for _ in range(r.count(_MIN_RECORD_SIZE)):
            remote = r.text()
            name = r.text()
            repo_path = r.text()
            last_accessed = r.u64()
            accessed = r.f64()
            if not math.isfinite(accessed) or accessed < 0:
                raise r.corrupt(f"invalid usage weight {accessed} for {remote}:{name}")
            records.append(RepoRecord(
                remote=remote,
                name=name,
                path=repo_path,
                last_accessed=last_accessed,
                accessed=accessed,
            ))
        return records

    return _decode(data, DATABASE_VERSION, read, path)


# -----------------------------------------------------------------------------
# Keywords
# -----------------------------------------------------------------------------

def encode_keywords(keywords: Mapping[str, int]) -> bytes:
    """Serialize a keyword -> expiry map, header included.

    Keys are written sorted so identical maps produce identical bytes.
    """
    def write(w: _Writer) -> None:
        w.u64(len(keywords))
        for keyword in sorted(keywords):
            w.text(keyword)
            w.u64(keywords[keyword])

    return _encode(KEYWORDS_VERSION, write)


def decode_keywords(data: bytes, path: Optional[Path] = None) -> dict[str, int]:
    """Parse a keywords file. Raises the same errors as decode_records."""
    def read(r: _Reader) -> dict[str, int]:
        keywords = {}
        for _ in range(r.count(_MIN_KEYWORD_SIZE)):
            keyword = r.text()
            keywords[keyword] = r.u64()
        return keywords

    return _decode(data, KEYWORDS_VERSION, read, path)


# -----------------------------------------------------------------------------
# File I/O
# -----------------------------------------------------------------------------

def read_or_none(path: Path) -> Optional[bytes]:
    """Read a whole file, or return None if it does not exist yet."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise IoFailure(f"could not read file ({e.strerror})", path) from e


def ensure_dir(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoFailure(f"unable to create data directory ({e.strerror})", directory) from e


def _tmpfile(directory: Path) -> tuple[int, Path]:
    """Exclusively create a randomly named file in ``directory``."""
    attempts = 0
    while True:
        attempts += 1
        name = TMP_PREFIX + secrets.token_hex((TMP_NAME_LEN - len(TMP_PREFIX)) // 2)
        tmp_path = directory / name
        try:
            flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)
            return os.open(tmp_path, flags, 0o666), tmp_path
        except FileExistsError as e:
            if attempts < TMP_MAX_ATTEMPTS:
                continue
            raise IoFailure("could not create file", tmp_path) from e
        except OSError as e:
            raise IoFailure(f"could not create file ({e.strerror})", tmp_path) from e


def _copy_owner(fd: int, path: Path) -> None:
    """Give the temp file the owner of the file it replaces (POSIX only)."""
    if not hasattr(os, "fchown"):
        return
    # Best effort: only root can change ownership to another user
    with contextlib.suppress(OSError):
        st = path.stat()
        os.fchown(fd, st.st_uid, st.st_gid)


def _rename(src: Path, dst: Path) -> None:
    attempts = 0
    while True:
        try:
            os.replace(src, dst)
            return
        except PermissionError as e:
            if attempts < RENAME_MAX_ATTEMPTS:
                attempts += 1
                logger.debug("Rename %s -> %s denied, retry %d", src, dst, attempts)
                continue
            raise IoFailure(f"could not rename {src} over destination", dst) from e
        except OSError as e:
            raise IoFailure(f"could not rename {src} over destination ({e.strerror})", dst) from e


def atomic_write(path: Path, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` so readers see the old or new contents, never a mix.

    The rename is the commit point. If anything fails before it, the temp
    file is removed and ``path`` is left untouched.
    """
    path = Path(path)
    fd, tmp_path = _tmpfile(path.parent)
    try:
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
                _copy_owner(f.fileno(), path)
        except OSError as e:
            raise IoFailure(f"could not write to file ({e.strerror})", tmp_path) from e
        _rename(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise
    logger.debug("Wrote %d bytes to %s", len(data), path)
