from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import crud
from auth.jwt import get_current_user
from db import get_db
from schemas import GraphEdgeCreate, GraphEdgeOut, GraphNodeCreate, GraphNodeOut, GraphNodeUpdate, TokenPayload
from utils.responses import ok

router = APIRouter(prefix="/graph", tags=["Graph"])


@router.post("/nodes", status_code=status.HTTP_201_CREATED, summary="Add a node to a run's graph")
def create_node(body: GraphNodeCreate, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, str(body.run_id), user.user_id)
    return ok(GraphNodeOut.model_validate(crud.create_graph_node(db, body)))


@router.patch("/nodes/{node_pk}", summary="Update node status, label or layout")
def update_node(
    node_pk: str,
    body: GraphNodeUpdate,
    db: Session = Depends(get_db),
    user: TokenPayload = Depends(get_current_user),
):
    node = crud.update_graph_node(db, node_pk, body, owner_id=user.user_id)
    return ok(GraphNodeOut.model_validate(node))


@router.post("/edges", status_code=status.HTTP_201_CREATED, summary="Connect two nodes by their node ids")
def create_edge(body: GraphEdgeCreate, db: Session = Depends(get_db), user: TokenPayload = Depends(get_current_user)):
    crud.get_run(db, str(body.run_id), user.user_id)
    return ok(GraphEdgeOut.model_validate(crud.create_graph_edge(db, body)))
