"""Shared pytest fixtures for all tests."""

import pytest

from assembly.artifact_store import DirectoryArtifactStore, InMemoryArtifactStore
from assembly.merge_engine import MergeEngine
from staging.chunk_receiver import ChunkReceiver
from staging.chunk_store import DirectoryChunkStore, InMemoryChunkStore
from staging.session_registry import SessionRegistry


@pytest.fixture
def staging_dir(tmp_path):
    """
    Create temporary staging directory.

    Returns:
        Path to the chunk staging root
    """
    path = tmp_path / 'ReceivedFiles' / 'temp'
    path.mkdir(parents=True)
    return path


@pytest.fixture
def artifact_dir(tmp_path):
    path = tmp_path / 'ReceivedFiles'
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture(params=['directory', 'memory'])
def stores(request, staging_dir, artifact_dir):
    """
    Chunk and artifact stores, once per backend.

    Returns:
        Tuple of (ChunkStore, ArtifactStore)
    """
    if request.param == 'directory':
        return DirectoryChunkStore(staging_dir), DirectoryArtifactStore(artifact_dir, reserved_names=[staging_dir.name])
    return InMemoryChunkStore(), InMemoryArtifactStore()


@pytest.fixture
def chunk_store(stores):
    return stores[0]


@pytest.fixture
def artifact_store(stores):
    return stores[1]


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def receiver(chunk_store, registry):
    return ChunkReceiver(chunk_store, registry)


@pytest.fixture
def merge_engine(chunk_store, artifact_store, registry):
    return MergeEngine(chunk_store, artifact_store, registry)


@pytest.fixture
def read_artifact(artifact_store):
    """Read a whole artifact back from the active store backend."""
    def _read(file_name: str) -> bytes:
        return b"".join(artifact_store.read_streaming(file_name))
    return _read
