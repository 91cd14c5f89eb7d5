"""Import router for compose file uploads."""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException, UploadFile

from config import settings
from parser.syntax import YAML_EXTENSIONS
from routers.graph import GraphResponse, build_graph_response

logger = logging.getLogger(__name__)

router = APIRouter()


def _project_name(filename: str) -> str:
    """Derive the project name from the uploaded file name.

    Raises:
        HTTPException: If the file is not a YAML document.
    """
    path = Path(filename)
    if path.suffix.lower() not in YAML_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file extension '{path.suffix}'. Use .yml or .yaml.",
        )
    return path.stem


@router.post("/import", response_model=GraphResponse)
async def import_file(file: UploadFile) -> GraphResponse:
    """Import a compose file and return the project with its diagram.

    The project name is taken from the file name without its extension.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    project_name = _project_name(file.filename)

    raw_bytes = await file.read()
    if len(raw_bytes) > settings.max_upload_bytes:
        logger.warning("Rejected upload %s: %d bytes", file.filename, len(raw_bytes))
        raise HTTPException(status_code=413, detail="File too large")

    try:
        content = raw_bytes.decode("UTF-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(
            status_code=400, detail="File must be UTF-8 encoded"
        ) from exc

    return build_graph_response(content, project_name)
