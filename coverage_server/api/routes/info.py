from typing import List

from fastapi import APIRouter, Request
from fastapi.routing import APIRoute
from pydantic import BaseModel

from coverage_server.config.settings import settings

router = APIRouter(tags=["info"])


class EndpointInfo(BaseModel):
    path: str
    methods: List[str]
    summary: str = ""


class ApiInfo(BaseModel):
    name: str
    version: str
    description: str
    endpoints: List[EndpointInfo]
    plugins: List[str]


@router.get("/api", response_model=ApiInfo)
async def api_info(request: Request):
    """Describe the server, its routes and the loaded plugins"""
    endpoints = [
        EndpointInfo(
            path=route.path,
            methods=sorted(route.methods),
            summary=route.summary or (route.description or "").split("\n")[0],
        )
        for route in request.app.routes
        if isinstance(route, APIRoute) and route.include_in_schema
    ]
    return ApiInfo(
        name="vitest-coverage-server",
        version=settings.version,
        description="Vitest setup, coverage analysis and test generation for JavaScript projects",
        endpoints=endpoints,
        plugins=getattr(request.app.state, "plugins", []),
    )
