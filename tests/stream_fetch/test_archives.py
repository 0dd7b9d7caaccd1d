"""Tests for the streaming tar and zip backends."""

from __future__ import annotations

import io
import tarfile
import zipfile

import pytest

from StreamFetch.errors import FormatError
from StreamFetch.io.archives import EntryKind, TarArchive, ZipArchive, open_archive
from StreamFetch.io.sniff import StreamKind
from StreamFetch.io.streams import PeekableStream

from archive_factory import TarMember, build_tar, build_zip, scenario_members


def _stream(data: bytes) -> PeekableStream:
    return PeekableStream(io.BytesIO(data))


def test_tar_yields_entries_in_order() -> None:
    with TarArchive(_stream(build_tar(scenario_members()))) as archive:
        members = [(entry, reader.read()) for entry, reader in archive]

    assert [(entry.name, entry.kind) for entry, _ in members] == [
        ("a", EntryKind.DIRECTORY),
        ("a/file.txt", EntryKind.FILE),
        ("link", EntryKind.SYMLINK),
    ]
    directory, regular, link = members
    assert directory[0].mode == 0o755
    assert regular[0].size == 2
    assert regular[0].mtime == 1_600_000_000
    assert regular[1] == b"hi"
    assert link[1] == b"a/file.txt"


def test_tar_unread_content_is_skipped() -> None:
    payload = build_tar(
        [TarMember("big.bin", data=b"x" * 50_000), TarMember("small.txt", data=b"ok")]
    )
    with TarArchive(_stream(payload)) as archive:
        first = archive.next_entry()
        assert first is not None
        first[1].read(10)
        second = archive.next_entry()
        assert second is not None
        assert second[0].name == "small.txt"
        assert second[1].read() == b"ok"
        assert archive.next_entry() is None


def test_tar_reports_unsupported_members() -> None:
    payload = build_tar(
        [
            TarMember("pipe", type=tarfile.FIFOTYPE),
            TarMember("hard", type=tarfile.LNKTYPE, linkname="pipe"),
        ]
    )
    with TarArchive(_stream(payload)) as archive:
        entries = [entry for entry, _ in archive]

    assert [entry.kind for entry in entries] == [EntryKind.UNSUPPORTED] * 2
    assert [entry.detail for entry in entries] == ["fifo", "hard link"]


def test_malformed_tar_raises_format_error() -> None:
    garbage = b"\x01" * 257 + b"ustar" + b"\x02" * 1000
    with pytest.raises(FormatError) as excinfo:
        with TarArchive(_stream(garbage)) as archive:
            list(archive)
    assert excinfo.value.layer == "tar"


def test_truncated_tar_member_reads_short() -> None:
    """Data cut off inside a member ends the reader instead of failing the archive."""

    payload = build_tar([TarMember("data.bin", data=b"y" * 4096)])
    with TarArchive(_stream(payload[:1024])) as archive:
        member = archive.next_entry()
        assert member is not None
        entry, reader = member
        data = reader.read()

    assert entry.size == 4096
    assert len(data) < entry.size
    assert reader.read() == b""


def test_truncated_zip_member_reads_short() -> None:
    payload = build_zip([("data.bin", b"z" * 4096)])
    with ZipArchive(_stream(payload[:1000])) as archive:
        member = archive.next_entry()
        assert member is not None
        entry, reader = member
        data = reader.read()

    assert entry.size == 4096
    assert 0 < len(data) < entry.size
    assert set(data) == {ord("z")}


def test_zip_streams_without_central_directory() -> None:
    payload = build_zip([("docs/", b""), ("docs/readme.txt", b"read me"), ("top.bin", b"\x00\x01")])
    with ZipArchive(_stream(payload)) as archive:
        members = [(entry.name.rstrip("/"), entry.kind, reader.read()) for entry, reader in archive]

    assert members == [
        ("docs", EntryKind.DIRECTORY, b""),
        ("docs/readme.txt", EntryKind.FILE, b"read me"),
        ("top.bin", EntryKind.FILE, b"\x00\x01"),
    ]


def test_zip_unread_content_is_skipped() -> None:
    payload = build_zip([("one.txt", b"1" * 10_000), ("two.txt", b"2")])
    with ZipArchive(_stream(payload)) as archive:
        first = archive.next_entry()
        assert first is not None
        second = archive.next_entry()
        assert second is not None
        assert second[0].name == "two.txt"
        assert second[1].read() == b"2"


def test_zip_read_error_from_source_propagates() -> None:
    class Failing(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def readinto(self, buffer) -> int:
            raise ConnectionResetError("peer went away")

    with pytest.raises(ConnectionResetError):
        with ZipArchive(PeekableStream(Failing())) as archive:
            list(archive)


def test_open_archive_selects_backend() -> None:
    with open_archive(StreamKind.TAR, _stream(build_tar([]))) as archive:
        assert isinstance(archive, TarArchive)
        assert archive.next_entry() is None
    with open_archive(StreamKind.ZIP, _stream(build_zip([("a", b"a")]))) as archive:
        assert isinstance(archive, ZipArchive)
    with pytest.raises(ValueError):
        open_archive(StreamKind.GZIP, _stream(b""))


def test_zip_symlink_is_read_as_regular_file() -> None:
    """Streaming zip sees only local headers, so Unix link attributes are lost."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zipf:
        info = zipfile.ZipInfo("shortcut", date_time=(2020, 9, 13, 12, 26, 40))
        info.external_attr = 0o120777 << 16
        zipf.writestr(info, b"target.txt")

    with ZipArchive(_stream(buffer.getvalue())) as archive:
        members = [(entry.kind, reader.read()) for entry, reader in archive]

    assert members == [(EntryKind.FILE, b"target.txt")]
