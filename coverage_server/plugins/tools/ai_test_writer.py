from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from coverage_server.config.settings import Settings
from coverage_server.core.dependencies import get_llm_service, get_settings, require_project_path
from coverage_server.core.exceptions import LLMNotConfiguredError, ProjectNotFoundError
from coverage_server.models.schemas import AIGenerateTestsRequest, AIGenerateTestsResponse, AIHealthResponse
from coverage_server.plugins.base import PluginMeta
from coverage_server.services.ai_test_writer import generate_ai_tests
from coverage_server.services.llm_service import LLMService

logger = structlog.get_logger()

router = APIRouter(tags=["ai-test-writer"])


@router.post("/ai-generate-tests", response_model=AIGenerateTestsResponse)
async def ai_generate_tests(
    request: AIGenerateTestsRequest,
    llm_service: LLMService = Depends(get_llm_service),
    settings: Settings = Depends(get_settings)
):
    """Write tests for uncovered files with the configured language model"""
    project_path = require_project_path(request.project_path)
    if not llm_service.is_configured:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{llm_service.provider_name} API key not configured"
        )

    try:
        generated = await generate_ai_tests(
            project_path, request.uncovered_files, llm_service, max_files=settings.ai_max_files
        )
        return AIGenerateTestsResponse(
            generated_test_files=generated,
            message=f"Generated {len(generated)} AI-powered test files",
            provider=llm_service.provider_name
        )
    except (LLMNotConfiguredError, ProjectNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate AI tests", project_path=project_path, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.get("/ai-health", response_model=AIHealthResponse)
async def ai_health(llm_service: LLMService = Depends(get_llm_service)):
    """Report whether the language model backend is configured and reachable"""
    provider = llm_service.provider_name
    if not llm_service.is_configured:
        return AIHealthResponse(
            status="not_configured", provider=provider, message=f"{provider} API key not configured"
        )

    try:
        healthy = await llm_service.check_health()
    except Exception as e:
        logger.warning("LLM health check failed", provider=provider, error=str(e))
        healthy = False

    if healthy:
        return AIHealthResponse(status="healthy", provider=provider, message=f"{provider} is reachable")
    return AIHealthResponse(status="unhealthy", provider=provider, message=f"{provider} did not respond")


plugin = PluginMeta(
    name="ai-test-writer",
    description="Generates tests for uncovered files with a language model.",
    router=router,
    tags=["ai-test-writer"],
)
