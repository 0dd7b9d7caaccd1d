"""Tests for single-layer decompression and name inference."""

from __future__ import annotations

import io

import pytest

from StreamFetch.errors import FormatError
from StreamFetch.io.decompress import InferredName, open_layer
from StreamFetch.io.sniff import StreamKind
from StreamFetch.io.streams import PeekableStream

from archive_factory import bzip2_bytes, gzip_bytes


def _peekable(data: bytes) -> PeekableStream:
    return PeekableStream(io.BytesIO(data))


def test_gzip_adopts_embedded_name() -> None:
    name = InferredName("download.gz")
    with open_layer(StreamKind.GZIP, _peekable(gzip_bytes(b"body", name="real.txt")), name) as layer:
        assert layer.read() == b"body"
    assert name.value == "real.txt"


def test_gzip_strips_suffix_without_embedded_name() -> None:
    name = InferredName("notes.txt.gz")
    with open_layer(StreamKind.GZIP, _peekable(gzip_bytes(b"body")), name) as layer:
        assert layer.read() == b"body"
    assert name.value == "notes.txt"


def test_bzip2_strips_suffix() -> None:
    name = InferredName("table.csv.bz2")
    with open_layer(StreamKind.BZIP2, _peekable(bzip2_bytes(b"a,b\n")), name) as layer:
        assert layer.read() == b"a,b\n"
    assert name.value == "table.csv"


def test_unrelated_suffix_is_kept() -> None:
    name = InferredName("archive.tgz")
    with open_layer(StreamKind.GZIP, _peekable(gzip_bytes(b"x")), name) as layer:
        layer.read()
    assert name.value == "archive.tgz"


def test_corrupt_gzip_reports_layer() -> None:
    payload = bytearray(gzip_bytes(b"hello world" * 100))
    payload[20:30] = b"\xff" * 10
    layer = open_layer(StreamKind.GZIP, _peekable(bytes(payload)), InferredName())

    with pytest.raises(FormatError) as excinfo:
        layer.read()
    assert excinfo.value.layer == "gzip"
    assert str(excinfo.value).startswith("gzip: ")


def test_truncated_bzip2_reports_layer() -> None:
    payload = bzip2_bytes(b"hello world" * 1000)
    layer = open_layer(StreamKind.BZIP2, _peekable(payload[: len(payload) // 2]), InferredName())

    with pytest.raises(FormatError) as excinfo:
        layer.read()
    assert excinfo.value.layer == "bzip2"


def test_non_compression_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        open_layer(StreamKind.TAR, _peekable(b""), InferredName())
