from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
import structlog

from coverage_server.core.dependencies import project_path_or_default
from coverage_server.core.exceptions import InvalidBranchError, ProjectNotFoundError
from coverage_server.models.schemas import CoverageDiffRequest, CoverageDiffResult
from coverage_server.plugins.base import PluginMeta
from coverage_server.services.coverage_diff import generate_coverage_badge, generate_coverage_diff

logger = structlog.get_logger()

router = APIRouter(tags=["coverage-diff"])


@router.post("/coverage-diff", response_model=CoverageDiffResult)
async def coverage_diff(request: CoverageDiffRequest):
    """Compare coverage of the working tree with a base branch"""
    project_path = project_path_or_default(request.project_path)
    try:
        result = await generate_coverage_diff(project_path, request.base_branch)
    except (InvalidBranchError, ProjectNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate coverage diff", project_path=project_path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=result.model_dump(by_alias=True, exclude_none=True),
        )
    return result


@router.get("/coverage-badge.svg")
async def coverage_badge(
    project_path: Optional[str] = Query(None, alias="projectPath"),
    base_branch: str = Query("main", alias="baseBranch")
):
    """SVG badge showing the coverage change against the base branch"""
    try:
        svg = await generate_coverage_badge(project_path_or_default(project_path), base_branch)
    except (InvalidBranchError, ProjectNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate coverage badge", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    return Response(content=svg, media_type="image/svg+xml", headers={"Cache-Control": "no-cache"})


plugin = PluginMeta(
    name="coverage-diff",
    description="Coverage comparison against a base branch and a change badge.",
    router=router,
    tags=["coverage-diff"],
)
