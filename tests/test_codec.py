"""
Tests for the binary file format and atomic writes.
"""

import os
import struct
from pathlib import Path
from unittest.mock import patch

import pytest

from gitzoxide import codec
from gitzoxide.codec import (
    atomic_write,
    decode_keywords,
    decode_records,
    encode_keywords,
    encode_records,
    read_or_none,
)
from gitzoxide.errors import CorruptData, IoFailure, UnsupportedVersion
from gitzoxide.types import RepoRecord


def _header(version: int) -> bytes:
    return struct.pack("<I", version)


# -----------------------------------------------------------------------------
# Round trips
# -----------------------------------------------------------------------------

class TestRecordEncoding:
    """Encoding and decoding of the record list."""

    def test_round_trip(self):
        """Decoded records equal the encoded ones, order preserved."""
        records = [
            RepoRecord("gh", "org/a", "", 1_700_000_000, 3.0),
            RepoRecord("gl", "team/sub/b", "/srv/b", 42, 0.5),
            RepoRecord("gh", "ünïcode/репо", "", 0, 0.0),
        ]
        assert decode_records(encode_records(records)) == records

    def test_empty_list(self):
        """An empty store is a header plus a zero count."""
        data = encode_records([])
        assert data == _header(1) + struct.pack("<Q", 0)
        assert decode_records(data) == []

    def test_layout_is_fixed_width(self):
        """Integers are little-endian fixed width, not varints."""
        data = encode_records([RepoRecord("r", "n", "", 5, 1.0)])
        expected = (
            _header(1)
            + struct.pack("<Q", 1)
            + struct.pack("<Q", 1) + b"r"
            + struct.pack("<Q", 1) + b"n"
            + struct.pack("<Q", 0)
            + struct.pack("<Q", 5)
            + struct.pack("<d", 1.0)
        )
        assert data == expected

    def test_decoded_strings_are_independent_of_buffer(self):
        """Mutating the source buffer does not change decoded records."""
        buffer = bytearray(encode_records([RepoRecord("gh", "org/a")]))
        records = decode_records(buffer)
        buffer[:] = b"\x00" * len(buffer)
        assert records[0].name == "org/a"

    def test_negative_timestamp_cannot_be_encoded(self):
        with pytest.raises(ValueError):
            encode_records([RepoRecord("gh", "a", "", -1, 0.0)])


class TestKeywordEncoding:
    """Encoding and decoding of the keyword map."""

    def test_round_trip(self):
        keywords = {"zox": 100, "api": 200}
        assert decode_keywords(encode_keywords(keywords)) == keywords

    def test_encoding_is_deterministic(self):
        """Insertion order does not affect the bytes."""
        assert encode_keywords({"a": 1, "b": 2}) == encode_keywords({"b": 2, "a": 1})

    def test_record_file_is_not_a_keyword_file(self):
        """Same version, different body: decoding fails cleanly."""
        data = encode_records([RepoRecord("gh", "org/a", "", 1, 1.0)])
        with pytest.raises(CorruptData):
            decode_keywords(data)


# -----------------------------------------------------------------------------
# Malformed input
# -----------------------------------------------------------------------------

class TestVersionGate:
    """Only version 1 is accepted."""

    @pytest.mark.parametrize("version", [0, 2, 0xFFFFFFFF])
    def test_other_versions_rejected(self, version):
        with pytest.raises(UnsupportedVersion) as exc_info:
            decode_records(_header(version) + encode_records([])[4:])
        assert exc_info.value.version == version
        assert "supports: 1" in str(exc_info.value)

    def test_version_checked_before_body(self):
        """A garbage body behind a bad version still reports the version."""
        with pytest.raises(UnsupportedVersion):
            decode_records(_header(7) + b"\xff" * 3)

    def test_keywords_version_gate(self):
        with pytest.raises(UnsupportedVersion):
            decode_keywords(_header(2) + struct.pack("<Q", 0))


class TestCorruption:
    """Truncated or malformed data raises CorruptData."""

    @pytest.mark.parametrize("data", [b"", b"\x01", b"\x01\x00", b"\x01\x00\x00"])
    def test_shorter_than_header(self, data):
        with pytest.raises(CorruptData):
            decode_records(data)

    def test_header_without_body(self):
        with pytest.raises(CorruptData):
            decode_records(_header(1))

    def test_truncated_body(self):
        """Every proper prefix of a valid file is rejected."""
        data = encode_records([RepoRecord("gh", "org/a", "/p", 10, 2.0)])
        for end in range(4, len(data)):
            with pytest.raises(CorruptData):
                decode_records(data[:end])

    def test_trailing_bytes(self):
        with pytest.raises(CorruptData):
            decode_records(encode_records([]) + b"\x00")

    def test_huge_count_rejected_without_allocating(self):
        data = _header(1) + struct.pack("<Q", 2**60)
        with pytest.raises(CorruptData, match="exceeds available data"):
            decode_records(data)

    def test_huge_string_length(self):
        data = _header(1) + struct.pack("<Q", 1) + struct.pack("<Q", 2**63) + b"x" * 40
        with pytest.raises(CorruptData):
            decode_records(data)

    def test_invalid_utf8(self):
        data = (
            _header(1) + struct.pack("<Q", 1)
            + struct.pack("<Q", 2) + b"\xff\xfe"
            + struct.pack("<Q", 0) + struct.pack("<Q", 0)
            + struct.pack("<Q", 0) + struct.pack("<d", 0.0)
        )
        with pytest.raises(CorruptData, match="utf-8"):
            decode_records(data)

    @pytest.mark.parametrize("weight", [float("nan"), float("inf"), -1.0])
    def test_invalid_usage_weight(self, weight):
        data = encode_records([RepoRecord("gh", "a", "", 0, 0.0)])
        data = data[:-8] + struct.pack("<d", weight)
        with pytest.raises(CorruptData):
            decode_records(data)

    def test_payload_limit(self, monkeypatch):
        """Bodies above the size limit are rejected before parsing."""
        data = encode_records([RepoRecord("gh", "org/a")])
        monkeypatch.setattr(codec, "MAX_PAYLOAD_SIZE", len(data) - 5)
        with pytest.raises(CorruptData, match="exceeds limit"):
            decode_records(data)

    def test_default_payload_limit_is_32_mib(self):
        assert codec.MAX_PAYLOAD_SIZE == 32 * 1024 * 1024

    def test_error_names_path(self, tmp_path):
        path = tmp_path / "database"
        with pytest.raises(CorruptData) as exc_info:
            decode_records(b"\x01", path)
        assert exc_info.value.path == path
        assert str(path) in str(exc_info.value)


# -----------------------------------------------------------------------------
# File I/O
# -----------------------------------------------------------------------------

class TestReadOrNone:

    def test_missing_file(self, tmp_path):
        assert read_or_none(tmp_path / "nope") is None

    def test_existing_file(self, tmp_path):
        path = tmp_path / "f"
        path.write_bytes(b"abc")
        assert read_or_none(path) == b"abc"

    def test_unreadable_path_is_io_failure(self, tmp_path):
        """A directory where a file is expected is an I/O error, not 'missing'."""
        with pytest.raises(IoFailure):
            read_or_none(tmp_path)


class TestAtomicWrite:
    """Temp file + rename protocol."""

    def _entries(self, directory: Path) -> list[str]:
        return sorted(p.name for p in directory.iterdir())

    def test_creates_file(self, tmp_path):
        path = tmp_path / "database"
        atomic_write(path, b"hello")
        assert path.read_bytes() == b"hello"
        assert self._entries(tmp_path) == ["database"]

    def test_replaces_existing_file(self, tmp_path):
        path = tmp_path / "database"
        path.write_bytes(b"old contents")
        atomic_write(path, b"new")
        assert path.read_bytes() == b"new"
        assert self._entries(tmp_path) == ["database"]

    def test_failed_rename_leaves_destination_untouched(self, tmp_path):
        """Interruption between temp creation and rename keeps the old file."""
        path = tmp_path / "database"
        atomic_write(path, b"original")

        with patch("gitzoxide.codec.os.replace", side_effect=OSError(5, "boom")):
            with pytest.raises(IoFailure) as exc_info:
                atomic_write(path, b"replacement")

        assert path.read_bytes() == b"original"
        assert self._entries(tmp_path) == ["database"]

        message = str(exc_info.value)
        assert exc_info.value.path == path
        assert message.endswith(f"over destination (boom): {path}")
        assert f"{tmp_path}{os.sep}tmp_" in message
        assert "->" not in message

    def test_failed_write_removes_temp_file(self, tmp_path):
        path = tmp_path / "database"
        path.write_bytes(b"original")

        with patch("gitzoxide.codec.os.fsync", side_effect=OSError(28, "No space left")):
            with pytest.raises(IoFailure, match="could not write"):
                atomic_write(path, b"replacement")

        assert path.read_bytes() == b"original"
        assert self._entries(tmp_path) == ["database"]

    def test_interrupt_removes_temp_file(self, tmp_path):
        """Even KeyboardInterrupt cleans up before propagating."""
        path = tmp_path / "database"
        with patch("gitzoxide.codec.os.replace", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                atomic_write(path, b"data")
        assert self._entries(tmp_path) == []

    def test_temp_name_collision_retries(self, tmp_path):
        path = tmp_path / "database"
        (tmp_path / "tmp_aaaaaa").write_bytes(b"someone else")

        with patch("gitzoxide.codec.secrets.token_hex", side_effect=["aaaaaa", "aaaaaa", "bbbbbb"]):
            atomic_write(path, b"data")

        assert path.read_bytes() == b"data"
        assert (tmp_path / "tmp_aaaaaa").read_bytes() == b"someone else"

    def test_temp_name_collision_gives_up(self, tmp_path):
        path = tmp_path / "database"
        (tmp_path / "tmp_aaaaaa").write_bytes(b"taken")

        with patch("gitzoxide.codec.secrets.token_hex", return_value="aaaaaa") as token:
            with pytest.raises(IoFailure, match="could not create file"):
                atomic_write(path, b"data")

        assert token.call_count == codec.TMP_MAX_ATTEMPTS
        assert not path.exists()

    def test_rename_retried_on_permission_error(self, tmp_path):
        path = tmp_path / "database"
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(src)
            if len(calls) == 1:
                raise PermissionError(13, "locked")
            real_replace(src, dst)

        with patch("gitzoxide.codec.os.replace", side_effect=flaky_replace):
            atomic_write(path, b"data")

        assert len(calls) == 2
        assert path.read_bytes() == b"data"

    def test_rename_gives_up_on_persistent_permission_error(self, tmp_path):
        path = tmp_path / "database"
        with patch("gitzoxide.codec.os.replace", side_effect=PermissionError(13, "locked")) as replace:
            with pytest.raises(IoFailure) as exc_info:
                atomic_write(path, b"data")

        assert replace.call_count == codec.RENAME_MAX_ATTEMPTS + 1
        assert str(exc_info.value).endswith(f"over destination: {path}")
        assert self._entries(tmp_path) == []

    def test_missing_directory_is_io_failure(self, tmp_path):
        with pytest.raises(IoFailure):
            atomic_write(tmp_path / "missing" / "database", b"data")
