from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import crud
from auth.jwt import get_current_user
from db import get_db
from schemas import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    ArtifactCreate,
    ArtifactOut,
    CostOut,
    GraphEdgeOut,
    GraphNodeOut,
    LogOut,
    Paginated,
    RunCreate,
    RunGraph,
    RunOut,
    RunStatus,
    RunStatusUpdate,
    SortOrder,
    TokenPayload,
)
from services import lifecycle
from services.costs import summarize_costs
from utils.responses import fail, ok

router = APIRouter(prefix="/runs", tags=["Runs"])


@router.get("")
def list_runs(
    project_id: Optional[str] = Query(None, alias="projectId"),
    status_filter: Optional[RunStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    order: SortOrder = "desc",
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    rows, total = crud.list_runs(
        db, user.user_id, project_id=project_id, status=status_filter, page=page, limit=limit, order=order
    )
    return ok(Paginated.build([RunOut.model_validate(r) for r in rows], page, limit, total))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a run (always queued)")
def create_run(body: RunCreate, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    run = crud.create_run(db, body, owner_id=user.user_id)
    return ok(RunOut.model_validate(run), message="Run queued")


@router.get("/queued", summary="Oldest queued runs, for a worker to pick up")
def list_queued_runs(
    limit: int = Query(10, ge=1, le=MAX_PAGE_LIMIT),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    return ok([RunOut.model_validate(r) for r in crud.list_queued_runs(db, user.user_id, limit=limit)])


@router.get("/{run_id}")
def get_run(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    return ok(RunOut.model_validate(crud.get_run(db, run_id, user.user_id)))


@router.patch("/{run_id}/status", summary="Advance a run through its lifecycle")
def update_run_status(
    run_id: str,
    body: RunStatusUpdate,
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    run = crud.update_run_status(db, run_id, body.status, owner_id=user.user_id)
    return ok(RunOut.model_validate(run))


@router.post("/{run_id}/cancel")
def cancel_run(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    run = crud.update_run_status(db, run_id, lifecycle.CANCELLED, owner_id=user.user_id)
    return ok(RunOut.model_validate(run), message="Run cancelled")


@router.get("/{run_id}/logs", summary="Run logs, oldest first")
def get_run_logs(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, run_id, user.user_id)
    return ok([LogOut.model_validate(log) for log in crud.list_run_logs(db, run_id)])


@router.get("/{run_id}/graph", summary="Graph snapshot for a run")
def get_run_graph(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, run_id, user.user_id)
    nodes, edges = crud.get_run_graph(db, run_id)
    return ok(
        RunGraph(
            nodes=[GraphNodeOut.model_validate(n) for n in nodes],
            edges=[GraphEdgeOut.model_validate(e) for e in edges],
        )
    )


@router.get("/{run_id}/costs", summary="Cost entries for a run, newest first")
def get_run_costs(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, run_id, user.user_id)
    return ok([CostOut.model_validate(c) for c in crud.list_costs(db, run_id=run_id)])


@router.get("/{run_id}/costs/summary")
def get_run_cost_summary(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, run_id, user.user_id)
    costs = [CostOut.model_validate(c) for c in crud.list_costs(db, run_id=run_id)]
    return ok(summarize_costs(costs))


@router.get("/{run_id}/artifacts")
def list_run_artifacts(run_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, run_id, user.user_id)
    return ok([ArtifactOut.model_validate(a) for a in crud.list_run_artifacts(db, run_id)])


@router.post("/{run_id}/artifacts", status_code=status.HTTP_201_CREATED)
def create_run_artifact(
    run_id: str,
    body: ArtifactCreate,
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    run = crud.get_run(db, run_id, user.user_id)
    if str(body.run_id) != run.id or str(body.project_id) != run.project_id:
        return fail(status.HTTP_400_BAD_REQUEST, "runId and projectId must match the run")
    return ok(ArtifactOut.model_validate(crud.create_artifact(db, body)))
