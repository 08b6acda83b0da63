from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse
import structlog

from coverage_server.core.dependencies import project_path_or_default
from coverage_server.core.exceptions import CoverageArtifactError, ProjectNotFoundError
from coverage_server.core.project import resolve_project_root
from coverage_server.models.schemas import HeatmapResponse
from coverage_server.plugins.base import PluginMeta
from coverage_server.services.heatmap import HEATMAP_FILE, generate_coverage_heatmap, heatmap_path

logger = structlog.get_logger()

router = APIRouter(tags=["coverage-heatmap"])


def _generate(project_path: Optional[str]):
    path = project_path_or_default(project_path)
    try:
        return generate_coverage_heatmap(path)
    except (CoverageArtifactError, ProjectNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate heatmap", project_path=path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.get("/generate-heatmap", response_model=HeatmapResponse)
async def generate_heatmap(project_path: Optional[str] = Query(None, alias="projectPath")):
    """Render the coverage heatmap from the last coverage run"""
    heatmap = _generate(project_path)
    return HeatmapResponse(
        heatmap_path=str(heatmap),
        url=f"/coverage/{HEATMAP_FILE}",
        message="Coverage heatmap generated successfully"
    )


@router.get("/coverage-heatmap.html", response_class=FileResponse)
async def coverage_heatmap_page(project_path: Optional[str] = Query(None, alias="projectPath")):
    """Serve the generated heatmap page, rendering it first if it does not exist yet"""
    try:
        existing = heatmap_path(resolve_project_root(project_path_or_default(project_path)))
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if not existing.is_file():
        existing = _generate(project_path)
    return FileResponse(existing, media_type="text/html")


plugin = PluginMeta(
    name="coverage-heatmap",
    description="Interactive HTML heatmap of line coverage.",
    router=router,
    tags=["coverage-heatmap"],
)
