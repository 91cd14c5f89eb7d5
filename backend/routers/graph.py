"""Graph router: compose YAML in, positioned diagram out."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from parser.parser import ComposeParseError, ComposeParser
from parser.validator import validate_references
from services.layout import LayoutOptions, compute_layout

logger = logging.getLogger(__name__)

router = APIRouter()


class GraphRequest(BaseModel):
    """Request body for graph endpoint."""

    source: str
    project_name: str | None = None
    options: LayoutOptions | None = None


class GraphResponse(BaseModel):
    """Response body for graph and import endpoints."""

    project: dict[str, Any]
    graph: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)


def build_graph_response(
    source: str,
    project_name: str | None = None,
    options: LayoutOptions | None = None,
) -> GraphResponse:
    """Decode, check references and lay out a compose document.

    Raises:
        HTTPException: If the document cannot be decoded.
    """
    try:
        project = ComposeParser().parse(source, project_name)
    except ComposeParseError as exc:
        logger.warning("Rejected compose document: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    graph = compute_layout(project, options)

    return GraphResponse(
        project=project.model_dump(mode="json", exclude_none=True),
        graph=graph.to_dict(),
        warnings=validate_references(project),
    )


@router.post("/graph", response_model=GraphResponse)
async def create_graph(request: GraphRequest) -> GraphResponse:
    """Parse compose YAML and return the project with its diagram."""
    return build_graph_response(request.source, request.project_name, request.options)
