from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from newsletter_agent.errors import NotFound
from newsletter_agent.orchestrator import NewsletterOrchestrator, PipelineState
from newsletter_agent.workspace import Workspace
from newsletter_api.api.deps import get_orchestrator, get_workspace

router = APIRouter()


class HistoryItem(BaseModel):
    id: str
    captured_at: str
    title: str


class RestoreResponse(BaseModel):
    id: str
    title: str


@router.get("/history", response_model=list[HistoryItem])
def list_history(workspace: Workspace = Depends(get_workspace)):
    return [HistoryItem(id=e.id, captured_at=e.captured_at, title=e.title) for e in workspace.history.list()]


@router.post("/history/{entry_id}/restore", response_model=RestoreResponse)
def restore_history(
    entry_id: str,
    workspace: Workspace = Depends(get_workspace),
    orchestrator: NewsletterOrchestrator = Depends(get_orchestrator),
):
    if orchestrator.state == PipelineState.RUNNING:
        raise HTTPException(status_code=409, detail="A newsletter run is in progress")
    try:
        document = workspace.restore(entry_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return RestoreResponse(id=entry_id, title=document.title)


@router.delete("/history/{entry_id}", status_code=204)
def delete_history(entry_id: str, workspace: Workspace = Depends(get_workspace)):
    workspace.remove_history(entry_id)


@router.delete("/history", status_code=204)
def clear_history(workspace: Workspace = Depends(get_workspace)):
    workspace.clear_history()
