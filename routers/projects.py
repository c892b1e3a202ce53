from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

import crud
from auth.jwt import get_current_user
from db import get_db
from schemas import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    Paginated,
    ProjectCreate,
    ProjectOut,
    ProjectStatus,
    ProjectUpdate,
    SortOrder,
    TokenPayload,
)
from utils.responses import ok

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("", summary="List the caller's projects")
def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    order: SortOrder = "desc",
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    rows, total = crud.list_projects(db, user.user_id, status=status_filter, page=page, limit=limit, order=order)
    items = [ProjectOut.model_validate(p) for p in rows]
    return ok(Paginated.build(items, page, limit, total))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a project owned by the caller")
def create_project(
    body: ProjectCreate,
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    project = crud.create_project(db, owner_id=user.user_id, data=body)
    return ok(ProjectOut.model_validate(project))


@router.get("/{project_id}")
def get_project(
    project_id: str = Path(..., title="The ID of the project to retrieve"),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    return ok(ProjectOut.model_validate(crud.get_project(db, project_id, user.user_id)))


@router.put("/{project_id}")
def update_project(
    body: ProjectUpdate,
    project_id: str = Path(..., title="The ID of the project to update"),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    project = crud.update_project(db, project_id, user.user_id, body)
    return ok(ProjectOut.model_validate(project))


@router.delete("/{project_id}")
def delete_project(
    project_id: str = Path(..., title="The ID of the project to delete"),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    """
    Soft delete: the row stays, its status becomes ``deleted``.
    """
    project = crud.delete_project(db, project_id, user.user_id)
    return ok(ProjectOut.model_validate(project), message="Project deleted")
