from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import crud
from auth.jwt import get_current_user
from db import get_db
from schemas import LogCreate, LogLevel, LogOut, TokenPayload
from utils.responses import ok

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.get("", summary="Project logs, oldest first")
def list_logs(
    project_id: str = Query(..., alias="projectId"),
    run_id: Optional[str] = Query(None, alias="runId"),
    level: Optional[LogLevel] = None,
    source: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    crud.get_project(db, project_id, user.user_id)
    rows = crud.list_logs(db, project_id=project_id, run_id=run_id, level=level, source=source, limit=limit)
    return ok([LogOut.model_validate(log) for log in rows])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Append a log entry")
def create_log(body: LogCreate, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_project(db, str(body.project_id), user.user_id)
    if body.run_id is not None:
        crud.get_run_in_project(db, str(body.run_id), str(body.project_id), user.user_id)
    return ok(LogOut.model_validate(crud.create_log(db, body)))
