from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from newsletter_agent.errors import PipelineBusy
from newsletter_agent.orchestrator import STEPS, NewsletterOrchestrator
from newsletter_agent.workspace import Workspace
from newsletter_api.api.deps import get_orchestrator, get_workspace

router = APIRouter()


class IssueResponse(BaseModel):
    title: str
    state: str
    status: str
    in_flight: list[str]
    sections: dict[str, Any]


class GenerateRequest(BaseModel):
    topic: Optional[str] = None


class StepIssueModel(BaseModel):
    section_key: str
    kind: str
    message: str


class UsageModel(BaseModel):
    input_tokens: int
    output_tokens: int
    cost_usd: float


class GenerateResponse(BaseModel):
    state: str
    status: str
    issues: list[StepIssueModel]
    usage: UsageModel
    snapshot_id: Optional[str] = None


class RefreshRequest(BaseModel):
    hint: Optional[str] = None


class RefreshResponse(BaseModel):
    section_key: str
    succeeded: bool
    status: str
    section: dict[str, Any]


def _usage(usage) -> UsageModel:
    return UsageModel(input_tokens=usage.input_tokens, output_tokens=usage.output_tokens, cost_usd=usage.cost_usd)


@router.get("/issue", response_model=IssueResponse)
def get_issue(
    workspace: Workspace = Depends(get_workspace),
    orchestrator: NewsletterOrchestrator = Depends(get_orchestrator),
):
    document = workspace.store.get()
    return IssueResponse(
        title=document.title,
        state=orchestrator.state.value,
        status=orchestrator.status,
        in_flight=sorted(orchestrator.in_flight),
        sections=document.to_dict(),
    )


@router.post("/issue/generate", response_model=GenerateResponse)
def generate_issue(
    request: GenerateRequest,
    workspace: Workspace = Depends(get_workspace),
    orchestrator: NewsletterOrchestrator = Depends(get_orchestrator),
):
    try:
        result = orchestrator.run(request.topic)
    except PipelineBusy as e:
        raise HTTPException(status_code=409, detail=e.message)
    finally:
        workspace.after_run()
    return GenerateResponse(
        state=result.state.value,
        status=result.status,
        issues=[StepIssueModel(section_key=i.section_key, kind=i.kind, message=i.message) for i in result.issues],
        usage=_usage(result.usage),
        snapshot_id=result.snapshot_id,
    )


@router.post("/issue/sections/{section_key}/refresh", response_model=RefreshResponse)
def refresh_section(
    section_key: str,
    request: Optional[RefreshRequest] = None,
    workspace: Workspace = Depends(get_workspace),
    orchestrator: NewsletterOrchestrator = Depends(get_orchestrator),
):
    if section_key not in STEPS:
        raise HTTPException(status_code=404, detail=f"Unknown section: {section_key}")
    hint = request.hint if request else None
    try:
        result = orchestrator.refresh_section(section_key, hint)
    except PipelineBusy as e:
        raise HTTPException(status_code=409, detail=e.message)
    return RefreshResponse(
        section_key=section_key,
        succeeded=result.succeeded,
        status=result.status,
        section=workspace.store.section(section_key).to_dict(),
    )
