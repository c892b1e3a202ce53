from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import crud
from auth.jwt import get_current_user
from db import get_db
from schemas import CostCreate, CostOut, TokenPayload
from services.costs import summarize_costs
from utils.responses import ok

router = APIRouter(prefix="/costs", tags=["Costs"])


def _project_costs(db: Session, user: TokenPayload, project_id: str, run_id: Optional[str]):
    crud.get_project(db, project_id, user.user_id)
    return [CostOut.model_validate(c) for c in crud.list_costs(db, project_id=project_id, run_id=run_id)]


@router.get("")
def list_costs(
    project_id: str = Query(..., alias="projectId"),
    run_id: Optional[str] = Query(None, alias="runId"),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    return ok(_project_costs(db, user, project_id, run_id))


@router.get("/summary")
def cost_summary(
    project_id: str = Query(..., alias="projectId"),
    run_id: Optional[str] = Query(None, alias="runId"),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    return ok(summarize_costs(_project_costs(db, user, project_id, run_id)))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Record token usage and USD cost")
def create_cost(body: CostCreate, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_project(db, str(body.project_id), user.user_id)
    if body.run_id is not None:
        crud.get_run_in_project(db, str(body.run_id), str(body.project_id), user.user_id)
    return ok(CostOut.model_validate(crud.create_cost(db, body)))
