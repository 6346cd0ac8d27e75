"""Tests for the chunk receiver."""

import io
from unittest.mock import MagicMock

import pytest

from common.exceptions import (
    InvalidIdentifierError,
    MissingIdentifierError,
    MissingIndexError,
    SessionBusyError,
    StorageFailureError,
)
from common.types import ChunkReceipt, SessionState
from staging.chunk_receiver import ChunkReceiver
from staging.chunk_store import ChunkStore
from staging.session_registry import SessionRegistry


def test_receive_creates_namespace_and_stores_chunk(receiver, chunk_store):
    receipt = receiver.receive("abc123", "1", b"World")

    assert receipt == ChunkReceipt(upload_id="abc123", chunk_index=1, size=5)
    assert chunk_store.namespace_exists("abc123")
    assert b"".join(chunk_store.read_chunk_streaming("abc123", 1)) == b"World"


def test_receive_accepts_stream_payload(receiver, chunk_store):
    receipt = receiver.receive("abc123", 0, io.BytesIO(b"Hello "))

    assert receipt.size == 6
    assert chunk_store.list_indices("abc123") == [0]


def test_receive_empty_payload(receiver, chunk_store):
    receipt = receiver.receive("abc123", "0", b"")

    assert receipt.size == 0
    assert chunk_store.list_indices("abc123") == [0]


def test_receive_last_write_wins(receiver, chunk_store):
    receiver.receive("abc123", "2", b"old")
    receiver.receive("abc123", "2", b"newer")

    assert b"".join(chunk_store.read_chunk_streaming("abc123", 2)) == b"newer"


def test_receive_marks_session_open(receiver, registry):
    receiver.receive("abc123", "0", b"x")

    assert registry.get_state("abc123") == SessionState.OPEN
    assert registry.active_writes("abc123") == 0


@pytest.mark.parametrize("upload_id", [None, ""])
def test_receive_missing_identifier(receiver, upload_id):
    with pytest.raises(MissingIdentifierError):
        receiver.receive(upload_id, "0", b"x")


def test_receive_rejects_unsafe_identifier(receiver, chunk_store):
    with pytest.raises(InvalidIdentifierError):
        receiver.receive("../escape", "0", b"x")
    assert chunk_store.list_namespaces() == []


@pytest.mark.parametrize("chunk_index", [None, "", "one", "-3"])
def test_receive_missing_index(receiver, chunk_store, chunk_index):
    with pytest.raises(MissingIndexError):
        receiver.receive("abc123", chunk_index, b"x")
    assert not chunk_store.namespace_exists("abc123")


def test_receive_rejected_while_merging(receiver, registry, chunk_store):
    receiver.receive("abc123", "0", b"x")
    registry.begin_exclusive("abc123")

    with pytest.raises(SessionBusyError):
        receiver.receive("abc123", "1", b"late")

    assert chunk_store.list_indices("abc123") == [0]


def test_receive_wraps_io_errors():
    store = MagicMock(spec=ChunkStore)
    store.write_chunk.side_effect = OSError(28, "No space left on device")
    registry = SessionRegistry()
    receiver = ChunkReceiver(store, registry)

    with pytest.raises(StorageFailureError) as exc_info:
        receiver.receive("abc123", "0", b"x")

    assert "No space left on device" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, OSError)
    assert registry.active_writes("abc123") == 0
