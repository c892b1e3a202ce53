import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from errors import BadRequestError, ConflictError, DatabaseError, NotFoundError
from models import Artifact, Cost, GraphEdge, GraphNode, Integration, Log, Project, Run, User, utcnow
from schemas import (
    ArtifactCreate,
    CostCreate,
    GraphEdgeCreate,
    GraphNodeCreate,
    GraphNodeUpdate,
    IntegrationCreate,
    IntegrationUpdate,
    LogCreate,
    ProjectCreate,
    ProjectUpdate,
    RunCreate,
)
from services import lifecycle

logger = logging.getLogger(__name__)

INTERTOOLS_SOURCE = "intertools"


@contextmanager
def translate_errors(db: Session, conflict_message: Optional[str] = None) -> Iterator[None]:
    """Roll back and re-raise store failures as application errors.

    Only callers guarding a unique constraint pass ``conflict_message``; any other
    integrity failure (NOT NULL, foreign key) is reported as invalid input.
    """
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        if conflict_message is not None:
            raise ConflictError(conflict_message) from e
        logger.warning("Integrity check failed: %s", e.orig)
        raise BadRequestError("Invalid request data") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database operation failed: %s", e)
        raise DatabaseError(f"Database operation failed: {e}", e) from e


def _save(db: Session, row: Any, conflict_message: Optional[str] = None) -> Any:
    with translate_errors(db, conflict_message):
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def _page(q: Query, page: int, limit: int) -> Tuple[List[Any], int]:
    with translate_errors(q.session):
        total = q.order_by(None).count()
        rows = q.offset((page - 1) * limit).limit(limit).all()
    return rows, total


# --- User CRUD helpers ---

def get_user(db: Session, user_id: str) -> Optional[User]:
    with translate_errors(db):
        return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    with translate_errors(db):
        return db.query(User).filter(User.username == username).first()


def create_user(db: Session, username: str, email: str, password_hash: str) -> User:
    # uniqueness is enforced by the table constraints alone
    u = User(username=username, email=email, password_hash=password_hash)
    return _save(db, u, conflict_message="Username or email already exists")


# --- Projects ---

def create_project(db: Session, owner_id: str, data: ProjectCreate) -> Project:
    p = Project(
        name=data.name,
        description=data.description,
        github_repo=data.github_repo,
        owner_id=owner_id,
        status="active",
    )
    return _save(db, p)


def list_projects(
    db: Session, owner_id: Optional[str], status: Optional[str] = None, page: int = 1, limit: int = 20,
    order: str = "desc",
) -> Tuple[List[Project], int]:
    """Projects newest first; soft-deleted ones only when asked for by status."""
    q = db.query(Project)
    if owner_id is not None:
        q = q.filter(Project.owner_id == owner_id)
    if status:
        q = q.filter(Project.status == status)
    else:
        q = q.filter(Project.status != "deleted")
    created = Project.created_at.asc() if order == "asc" else Project.created_at.desc()
    return _page(q.order_by(created), page, limit)


def get_project(db: Session, project_id: str, owner_id: Optional[str] = None) -> Project:
    with translate_errors(db):
        p = db.get(Project, project_id)
    if p is None or (owner_id is not None and p.owner_id != owner_id):
        raise NotFoundError("Project not found")
    return p


def update_project(db: Session, project_id: str, owner_id: str, data: ProjectUpdate) -> Project:
    p = get_project(db, project_id, owner_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(p, field, value)
    return _save(db, p)


def delete_project(db: Session, project_id: str, owner_id: str) -> Project:
    p = get_project(db, project_id, owner_id)
    p.status = "deleted"
    return _save(db, p)


# --- Integrations ---

def create_integration(db: Session, owner_id: str, data: IntegrationCreate) -> Integration:
    project = get_project(db, str(data.project_id), owner_id)
    i = Integration(
        project_id=project.id,
        type=data.type,
        name=data.name,
        config=data.config,
        credentials=data.credentials,
        status="active",
    )
    return _save(db, i)


def list_integrations(db: Session, owner_id: str, project_id: Optional[str] = None) -> List[Integration]:
    q = db.query(Integration).join(Project, Project.id == Integration.project_id).filter(Project.owner_id == owner_id)
    if project_id:
        q = q.filter(Integration.project_id == project_id)
    with translate_errors(db):
        return q.order_by(Integration.created_at.desc()).all()


def get_integration(db: Session, integration_id: str, owner_id: str) -> Integration:
    with translate_errors(db):
        i = (
            db.query(Integration)
            .join(Project, Project.id == Integration.project_id)
            .filter(Integration.id == integration_id, Project.owner_id == owner_id)
            .first()
        )
    if i is None:
        raise NotFoundError("Integration not found")
    return i


def update_integration(db: Session, integration_id: str, owner_id: str, data: IntegrationUpdate) -> Integration:
    i = get_integration(db, integration_id, owner_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(i, field, value)
    return _save(db, i)


def deactivate_integration(db: Session, integration_id: str, owner_id: str) -> Integration:
    i = get_integration(db, integration_id, owner_id)
    i.status = "inactive"
    return _save(db, i)


# --- Runs ---

def create_run(db: Session, data: RunCreate, owner_id: Optional[str] = None) -> Run:
    project = get_project(db, str(data.project_id), owner_id)
    if project.status == "deleted":
        raise BadRequestError("Cannot start a run on a deleted project")
    r = Run(
        project_id=project.id,
        name=data.name,
        trigger_type=data.trigger_type,
        config=data.config,
        status=lifecycle.QUEUED,
    )
    r = _save(db, r)
    # dispatch belongs to the external worker; it picks up queued runs itself
    logger.info("Run created and queued: %s", r.id)
    return r


def _runs_query(db: Session, owner_id: Optional[str]) -> Query:
    q = db.query(Run)
    if owner_id is not None:
        q = q.join(Project, Project.id == Run.project_id).filter(Project.owner_id == owner_id)
    return q


def list_runs(
    db: Session, owner_id: Optional[str], project_id: Optional[str] = None, status: Optional[str] = None,
    page: int = 1, limit: int = 20, order: str = "desc",
) -> Tuple[List[Run], int]:
    q = _runs_query(db, owner_id)
    if project_id:
        q = q.filter(Run.project_id == project_id)
    if status:
        q = q.filter(Run.status == status)
    created = Run.created_at.asc() if order == "asc" else Run.created_at.desc()
    return _page(q.order_by(created), page, limit)


def get_run(db: Session, run_id: str, owner_id: Optional[str] = None) -> Run:
    with translate_errors(db):
        r = _runs_query(db, owner_id).filter(Run.id == run_id).first()
    if r is None:
        raise NotFoundError("Run not found")
    return r


def get_run_in_project(db: Session, run_id: str, project_id: str, owner_id: Optional[str] = None) -> Run:
    run = get_run(db, run_id, owner_id)
    if run.project_id != project_id:
        raise BadRequestError("runId does not belong to projectId")
    return run


def update_run_status(db: Session, run_id: str, status: str, owner_id: Optional[str] = None) -> Run:
    r = get_run(db, run_id, owner_id)
    lifecycle.apply_transition(r, status, utcnow())
    r = _save(db, r)
    logger.info("Run %s moved to %s", r.id, r.status)
    return r


def list_queued_runs(db: Session, owner_id: Optional[str] = None, limit: int = 10) -> List[Run]:
    """Oldest queued runs first; the lookup a worker uses to pick up work."""
    with translate_errors(db):
        return (
            _runs_query(db, owner_id)
            .filter(Run.status == lifecycle.QUEUED)
            .order_by(Run.created_at.asc())
            .limit(limit)
            .all()
        )


# --- Logs ---

def create_log(db: Session, data: LogCreate) -> Log:
    log = Log(
        run_id=str(data.run_id) if data.run_id else None,
        project_id=str(data.project_id),
        level=data.level,
        message=data.message,
        meta_data=data.metadata,
        source=data.source,
        timestamp=data.timestamp or utcnow(),
    )
    return _save(db, log)


def list_logs(
    db: Session,
    project_id: Optional[str] = None,
    run_id: Optional[str] = None,
    level: Optional[str] = None,
    source: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Log]:
    q = db.query(Log)
    if project_id:
        q = q.filter(Log.project_id == project_id)
    if run_id:
        q = q.filter(Log.run_id == run_id)
    if level:
        q = q.filter(Log.level == level)
    if source:
        q = q.filter(Log.source == source)
    q = q.order_by(Log.timestamp.asc(), Log.created_at.asc())
    if limit:
        q = q.limit(limit)
    with translate_errors(db):
        return q.all()


def list_run_logs(db: Session, run_id: str) -> List[Log]:
    return list_logs(db, run_id=run_id)


# --- Graph ---

def create_graph_node(db: Session, data: GraphNodeCreate) -> GraphNode:
    n = GraphNode(
        run_id=str(data.run_id),
        node_id=data.node_id,
        label=data.label,
        type=data.type,
        status="pending",
        position_x=data.position_x,
        position_y=data.position_y,
        meta_data=data.metadata,
    )
    return _save(db, n)


def update_graph_node(
    db: Session, node_pk: str, data: GraphNodeUpdate, owner_id: Optional[str] = None
) -> GraphNode:
    with translate_errors(db):
        n = db.get(GraphNode, node_pk)
    if n is None:
        raise NotFoundError("Graph node not found")
    if owner_id is not None:
        # raises NotFoundError for runs of other owners
        get_run(db, n.run_id, owner_id)
    changes = data.model_dump(exclude_unset=True)
    if "metadata" in changes:
        n.meta_data = changes.pop("metadata") or {}
    for field, value in changes.items():
        setattr(n, field, value)
    return _save(db, n)


def create_graph_edge(db: Session, data: GraphEdgeCreate) -> GraphEdge:
    # endpoints are stored as given; they are not checked against the run's nodes
    e = GraphEdge(
        run_id=str(data.run_id),
        source_node_id=data.source_node_id,
        target_node_id=data.target_node_id,
        label=data.label,
        type=data.type,
        meta_data=data.metadata,
    )
    return _save(db, e)


def get_run_graph(db: Session, run_id: str) -> Tuple[List[GraphNode], List[GraphEdge]]:
    with translate_errors(db):
        nodes = db.query(GraphNode).filter(GraphNode.run_id == run_id).order_by(GraphNode.created_at.asc()).all()
        edges = db.query(GraphEdge).filter(GraphEdge.run_id == run_id).order_by(GraphEdge.created_at.asc()).all()
    return nodes, edges


# --- Costs ---

def create_cost(db: Session, data: CostCreate) -> Cost:
    c = Cost(
        run_id=str(data.run_id) if data.run_id else None,
        project_id=str(data.project_id),
        service=data.service,
        operation=data.operation,
        model=data.model,
        tokens_input=data.tokens_input,
        tokens_output=data.tokens_output,
        cost_usd=data.cost_usd,
        meta_data=data.metadata,
        timestamp=data.timestamp or utcnow(),
    )
    return _save(db, c)


def list_costs(db: Session, project_id: Optional[str] = None, run_id: Optional[str] = None) -> List[Cost]:
    q = db.query(Cost)
    if project_id:
        q = q.filter(Cost.project_id == project_id)
    if run_id:
        q = q.filter(Cost.run_id == run_id)
    with translate_errors(db):
        return q.order_by(Cost.timestamp.desc()).all()


# --- Artifacts ---

def create_artifact(db: Session, data: ArtifactCreate) -> Artifact:
    a = Artifact(
        run_id=str(data.run_id),
        project_id=str(data.project_id),
        name=data.name,
        type=data.type,
        content_type=data.content_type,
        size_bytes=data.size_bytes,
        storage_path=data.storage_path,
        meta_data=data.metadata,
    )
    return _save(db, a)


def list_run_artifacts(db: Session, run_id: str) -> List[Artifact]:
    with translate_errors(db):
        return db.query(Artifact).filter(Artifact.run_id == run_id).order_by(Artifact.created_at.asc()).all()


# --- InterTools ---

def create_intertools_log(
    db: Session, project_id: str, url: str, snippet: str, metadata: Dict[str, Any], preview_chars: int = 200
) -> Log:
    preview = snippet[:preview_chars] + ("..." if len(snippet) > preview_chars else "")
    log = Log(
        project_id=project_id,
        level="info",
        message=f"InterTools message: {preview}",
        meta_data={"url": url, "source": INTERTOOLS_SOURCE, "fullContent": snippet, **metadata},
        source=INTERTOOLS_SOURCE,
        timestamp=utcnow(),
    )
    return _save(db, log)


def list_intertools_messages(db: Session, project_id: str, limit: int) -> List[Log]:
    with translate_errors(db):
        return (
            db.query(Log)
            .filter(Log.project_id == project_id, Log.source == INTERTOOLS_SOURCE)
            .order_by(Log.created_at.desc())
            .limit(limit)
            .all()
        )
