from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from coverage_server.config.settings import Settings
from coverage_server.core.dependencies import get_settings, require_project_path
from coverage_server.core.exceptions import ProjectNotFoundError
from coverage_server.models.schemas import (
    CoverageAnalysis, GenerateTestsRequest, GenerateTestsResponse,
    ProjectRequest, SetupResponse
)
from coverage_server.services.coverage_service import analyze_coverage
from coverage_server.services.setup_service import setup_vitest
from coverage_server.services.test_generator import generate_tests

logger = structlog.get_logger()

router = APIRouter(tags=["coverage"])


@router.post("/setup-vitest", response_model=SetupResponse)
async def setup_vitest_route(request: ProjectRequest, settings: Settings = Depends(get_settings)):
    """Create a default Vitest configuration and install Vitest"""
    project_path = require_project_path(request.project_path)
    try:
        logger.info("Setting up Vitest", project_path=project_path)
        return await setup_vitest(project_path, settings.coverage_thresholds)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to set up Vitest", project_path=project_path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/analyze-coverage", response_model=CoverageAnalysis)
async def analyze_coverage_route(request: ProjectRequest):
    """Run Vitest with coverage and list uncovered statements, branches and functions"""
    project_path = require_project_path(request.project_path)
    try:
        logger.info("Analyzing coverage", project_path=project_path)
        return await analyze_coverage(project_path)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to analyze coverage", project_path=project_path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/generate-tests", response_model=GenerateTestsResponse)
async def generate_tests_route(request: GenerateTestsRequest):
    """Scaffold test files for uncovered sources, analyzing coverage first when none are given"""
    project_path = require_project_path(request.project_path)
    try:
        files = request.uncovered_files
        if files is None:
            files = (await analyze_coverage(project_path)).uncovered_files

        generated = generate_tests(project_path, files)
        return GenerateTestsResponse(
            generated_test_files=generated,
            message=f"Generated {len(generated)} test files"
        )
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate tests", project_path=project_path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
