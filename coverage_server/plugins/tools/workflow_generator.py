from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from coverage_server.config.settings import Settings
from coverage_server.core.dependencies import get_settings, project_path_or_default
from coverage_server.core.exceptions import ProjectNotFoundError, UnsupportedPlatformError
from coverage_server.models.schemas import (
    AllWorkflowsRequest, AllWorkflowsResponse, CIHealthResponse,
    WorkflowRequest, WorkflowResult
)
from coverage_server.plugins.base import PluginMeta
from coverage_server.services.workflow_generator import check_ci_setup, generate_ci_config

logger = structlog.get_logger()

router = APIRouter(tags=["ci-generator"])


@router.post("/generate-workflow", response_model=WorkflowResult)
async def generate_workflow(request: WorkflowRequest, settings: Settings = Depends(get_settings)):
    """Write a CI configuration for GitHub Actions or GitLab CI"""
    project_path = project_path_or_default(request.project_path)
    try:
        return generate_ci_config(
            project_path, request.platform, request.project_name, settings.coverage_thresholds
        )
    except (UnsupportedPlatformError, ProjectNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate workflow", platform=request.platform, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/generate-all-workflows", response_model=AllWorkflowsResponse)
async def generate_all_workflows(request: AllWorkflowsRequest, settings: Settings = Depends(get_settings)):
    """Write both the GitHub Actions and the GitLab CI configuration"""
    project_path = project_path_or_default(request.project_path)
    try:
        return AllWorkflowsResponse(
            github=generate_ci_config(project_path, "github", request.project_name, settings.coverage_thresholds),
            gitlab=generate_ci_config(project_path, "gitlab", request.project_name, settings.coverage_thresholds),
        )
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate workflows", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.get("/ci-health", response_model=CIHealthResponse)
async def ci_health(project_path: Optional[str] = Query(None, alias="projectPath")):
    """Report which CI configurations exist in the project"""
    checks = check_ci_setup(project_path_or_default(project_path))
    return CIHealthResponse(
        status="healthy",
        checks=checks,
        message="CI generator plugin is operational"
    )


plugin = PluginMeta(
    name="ci-generator",
    description="GitHub Actions and GitLab CI configuration generator.",
    router=router,
    tags=["ci-generator"],
)
