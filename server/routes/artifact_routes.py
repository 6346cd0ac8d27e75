"""Serves merged artifacts."""

import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from assembly.artifact_store import ArtifactStore
from common.exceptions import ArtifactNotFoundError
from common.utils import is_safe_name
from server import config
from server.dependencies import get_artifact_store
from server.schemas.common import ErrorResponse

router = APIRouter(
    prefix=config.ARTIFACT_URL_PREFIX,
    tags=["Artifacts"],
    responses={404: {"model": ErrorResponse}},
)


@router.get("/{file_name}")
async def fetch_artifact(
    file_name: str,
    artifact_store: ArtifactStore = Depends(get_artifact_store),
):
    """
    Download a merged file by name.

    Raises:
        - 404: No merged file with this name
    """
    size = artifact_store.get_size(file_name) if is_safe_name(file_name) else None
    if size is None:
        raise ArtifactNotFoundError(f"No merged file named {file_name}")

    media_type, _ = mimetypes.guess_type(file_name)

    return StreamingResponse(
        artifact_store.read_streaming(file_name),
        media_type=media_type or "application/octet-stream",
        headers={"Content-Length": str(size)},
    )
