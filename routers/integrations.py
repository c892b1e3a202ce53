from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import crud
from auth.jwt import get_current_user
from db import get_db
from schemas import IntegrationCreate, IntegrationOut, IntegrationUpdate, TokenPayload
from utils.responses import ok

router = APIRouter(prefix="/integrations", tags=["Integrations"])


@router.get("")
def list_integrations(
    project_id: Optional[str] = Query(None, alias="projectId"),
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    rows = crud.list_integrations(db, user.user_id, project_id=project_id)
    return ok([IntegrationOut.from_row(i) for i in rows])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_integration(
    body: IntegrationCreate,
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    return ok(IntegrationOut.from_row(crud.create_integration(db, user.user_id, body)))


@router.get("/{integration_id}")
def get_integration(integration_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    return ok(IntegrationOut.from_row(crud.get_integration(db, integration_id, user.user_id)))


@router.put("/{integration_id}")
def update_integration(
    integration_id: str,
    body: IntegrationUpdate,
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    return ok(IntegrationOut.from_row(crud.update_integration(db, integration_id, user.user_id, body)))


@router.delete("/{integration_id}")
def delete_integration(integration_id: str, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    # integrations are deactivated, never removed
    integration = crud.deactivate_integration(db, integration_id, user.user_id)
    return ok(IntegrationOut.from_row(integration), message="Integration deactivated")
