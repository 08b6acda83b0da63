from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Union, Literal
from datetime import datetime


class CamelModel(BaseModel):
    """Base model whose JSON form uses camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# Coverage artifact views

class UncoveredItem(CamelModel):
    file: str
    type: Literal["statement", "branch", "function"]
    id: str


class FileCoverageStats(CamelModel):
    total_statements: int = 0
    covered_statements: int = 0
    uncovered_statements: int = 0
    total_branches: int = 0
    covered_branches: int = 0
    total_functions: int = 0
    covered_functions: int = 0
    statement_coverage: int = Field(0, description="Rounded statement coverage percentage")
    branch_coverage: int = Field(0, description="Rounded branch coverage percentage")
    function_coverage: int = Field(0, description="Rounded function coverage percentage")


class FileCoverageDiff(CamelModel):
    base_statements: int
    current_statements: int
    statement_change: int
    base_branches: int
    current_branches: int
    branch_change: int


class DiffSummary(CamelModel):
    total_files: int
    improved_files: int
    degraded_files: int
    unchanged_files: int
    total_statement_change: int


# Requests

class ProjectRequest(CamelModel):
    project_path: Optional[str] = Field(None, description="Root directory of the JavaScript project")


class GenerateTestsRequest(ProjectRequest):
    uncovered_files: Optional[List[str]] = Field(
        None, description="Source files to scaffold tests for; analyzed from coverage when omitted"
    )


class AIGenerateTestsRequest(ProjectRequest):
    uncovered_files: List[Union[str, Dict[str, Any]]] = Field(
        default_factory=list, description="Uncovered items ({file, ...}) or plain file paths"
    )


class CoverageDiffRequest(ProjectRequest):
    base_branch: str = "main"


class WorkflowRequest(ProjectRequest):
    platform: str = "github"
    project_name: Optional[str] = None


class AllWorkflowsRequest(ProjectRequest):
    project_name: Optional[str] = None


# Responses

class SetupResponse(CamelModel):
    success: bool = True
    message: str
    created_files: List[str] = Field(default_factory=list)
    stdout: str = ""


class CoverageAnalysis(CamelModel):
    success: bool = True
    uncovered: List[UncoveredItem]
    uncovered_files: List[str]
    coverage_path: str


class GenerateTestsResponse(CamelModel):
    success: bool = True
    generated_test_files: List[str]
    message: str


class AIGenerateTestsResponse(GenerateTestsResponse):
    provider: str


class CoverageDiffResult(CamelModel):
    success: bool
    diff: Dict[str, FileCoverageDiff] = Field(default_factory=dict)
    summary: Optional[DiffSummary] = None
    error: Optional[str] = None
    current_coverage: Optional[Dict[str, Any]] = None


class ProfiledTest(CamelModel):
    title: str
    full_name: str
    duration: float = 0
    status: Optional[str] = None
    suite: Optional[str] = None
    file: Optional[str] = None


class SuiteProfile(CamelModel):
    name: str
    test_count: int
    total_duration: int
    avg_duration: int


class Recommendation(CamelModel):
    type: str
    severity: Literal["low", "medium", "high"]
    message: str
    affected_tests: List[str] = Field(default_factory=list)


class ProfileSummary(CamelModel):
    total_tests: int
    avg_duration: int
    slow_test_count: int
    slow_threshold: float


class TestProfile(CamelModel):
    success: bool = True
    summary: ProfileSummary
    slowest_tests: List[ProfiledTest]
    slow_tests: List[ProfiledTest]
    suites: List[SuiteProfile]
    recommendations: List[Recommendation]


class TestAnalysis(TestProfile):
    timestamp: datetime
    report: str


class HeatmapResponse(CamelModel):
    success: bool = True
    heatmap_path: str
    url: str
    message: str


class WorkflowResult(CamelModel):
    success: bool = True
    platform: str
    config_path: str
    readme_section: str
    instructions: str
    message: str


class AllWorkflowsResponse(CamelModel):
    success: bool = True
    github: WorkflowResult
    gitlab: WorkflowResult


class CISetupCheck(CamelModel):
    available: bool
    path: str


class CIHealthResponse(CamelModel):
    status: str
    checks: Dict[str, CISetupCheck]
    message: str


class AIHealthResponse(CamelModel):
    status: Literal["not_configured", "healthy", "unhealthy"]
    provider: str
    message: str
