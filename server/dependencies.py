"""Holds the storage and assembly components shared by the request handlers."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from assembly.artifact_store import ArtifactStore, DirectoryArtifactStore
from assembly.merge_engine import MergeEngine
from assembly.session_reaper import StaleSessionReaper
from server import config
from staging.chunk_receiver import ChunkReceiver
from staging.chunk_store import ChunkStore, DirectoryChunkStore
from staging.session_registry import SessionRegistry


@dataclass
class UploadComponents:
    """
    Wired set of collaborators for one server instance.
    """
    chunk_store: ChunkStore
    artifact_store: ArtifactStore
    registry: SessionRegistry
    receiver: ChunkReceiver
    merge_engine: MergeEngine
    reaper: StaleSessionReaper


_components: Optional[UploadComponents] = None


def build_components(
    chunk_store: ChunkStore,
    artifact_store: ArtifactStore,
    ttl_seconds: float = 0,
    reap_interval_seconds: float = 3600,
) -> UploadComponents:
    """
    Wire a receiver, merge engine and reaper around the given stores.

    Args:
        chunk_store: Staging namespace backend
        artifact_store: Merged artifact backend
        ttl_seconds: Idle time before a staged upload is reaped (0 disables)
        reap_interval_seconds: Time between reaper scans

    Returns:
        UploadComponents sharing one SessionRegistry
    """
    registry = SessionRegistry()
    merge_engine = MergeEngine(chunk_store, artifact_store, registry)
    return UploadComponents(
        chunk_store=chunk_store,
        artifact_store=artifact_store,
        registry=registry,
        receiver=ChunkReceiver(chunk_store, registry),
        merge_engine=merge_engine,
        reaper=StaleSessionReaper(
            chunk_store,
            merge_engine,
            registry,
            ttl_seconds=ttl_seconds,
            interval_seconds=reap_interval_seconds,
        ),
    )


def build_directory_components(
    upload_root: Path,
    staging_dir: Path,
    ttl_seconds: float = 0,
    reap_interval_seconds: float = 3600,
) -> UploadComponents:
    """
    Build components backed by directories, creating them if missing.

    A staging directory inside the upload root is reserved so merged
    artifacts cannot take its name.
    """
    chunk_store = DirectoryChunkStore(staging_dir)
    artifact_store = DirectoryArtifactStore(upload_root)
    artifact_store.ensure_root()
    chunk_store.ensure_root()
    artifact_store.reserve_path(staging_dir)
    return build_components(chunk_store, artifact_store, ttl_seconds, reap_interval_seconds)


def set_components(components: Optional[UploadComponents]) -> None:
    """Set global component instance"""
    global _components
    _components = components


def get_components() -> UploadComponents:
    """Get global component instance, building it from configuration on first use"""
    global _components
    if _components is None:
        _components = build_directory_components(
            upload_root=config.UPLOAD_ROOT,
            staging_dir=config.UPLOAD_STAGING_DIR,
            ttl_seconds=config.SESSION_TTL_SECONDS,
            reap_interval_seconds=config.SESSION_REAP_INTERVAL_SECONDS,
        )
    return _components


def get_chunk_receiver() -> ChunkReceiver:
    return get_components().receiver


def get_merge_engine() -> MergeEngine:
    return get_components().merge_engine


def get_artifact_store() -> ArtifactStore:
    return get_components().artifact_store
