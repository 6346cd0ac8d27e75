"""Command handler functions for CLI operations."""

from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from cli.config import Config
from cli.models import AbandonCommand, CommandRequest, FetchCommand, UploadCommand
from cli.upload_client import UploadClient, UploadClientError

logger = get_logger(__name__)


_client: Optional[UploadClient] = None


def get_client() -> UploadClient:
    """
    Get or create global UploadClient instance.

    Returns:
        UploadClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new UploadClient instance")
        config = Config(Path.home() / '.chunkyard' / 'config.json')
        _client = UploadClient(config)
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[UploadClient] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with local path and optional name, id and shuffle flag
        client: Optional UploadClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing upload command: path={cmd.path} shuffle={cmd.shuffle}")
    if client is None:
        client = get_client()

    try:
        result = client.upload_file(
            cmd.path,
            file_name=cmd.file_name,
            upload_id=cmd.upload_id,
            shuffle=cmd.shuffle,
        )
    except FileNotFoundError as e:
        return f"Error: {e}"
    except UploadClientError as e:
        return f"Upload failed: {e}"

    return (
        f"Uploaded: {result['fileName']} ({result['size']} bytes, {result['chunkCount']} chunks)\n"
        f"URL: {result['url']}"
    )


def handle_fetch(cmd: FetchCommand, client: Optional[UploadClient] = None) -> str:
    """
    Handle 'fetch' command.

    Args:
        cmd: FetchCommand with file name and optional output path
        client: Optional UploadClient for dependency injection (testing)

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()

    try:
        destination = client.fetch(cmd.file_name, cmd.output_path)
    except UploadClientError as e:
        return f"Fetch failed: {e}"

    return f"Saved {cmd.file_name} to {destination}"


def handle_abandon(cmd: AbandonCommand, client: Optional[UploadClient] = None) -> str:
    if client is None:
        client = get_client()

    try:
        client.abandon(cmd.upload_id)
    except UploadClientError as e:
        return f"Abandon failed: {e}"

    return f"Abandoned upload {cmd.upload_id}"


def dispatch_command(cmd_obj: CommandRequest, client: Optional[UploadClient] = None) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, UploadCommand):
        return handle_upload(cmd_obj, client)
    elif isinstance(cmd_obj, FetchCommand):
        return handle_fetch(cmd_obj, client)
    elif isinstance(cmd_obj, AbandonCommand):
        return handle_abandon(cmd_obj, client)
    else:
        return f"Unknown command type: {type(cmd_obj)}"
