from datetime import datetime
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import AliasChoices, AnyHttpUrl, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# --- Limits ---
USERNAME_MIN = 3
USERNAME_MAX = 50
PASSWORD_MIN = 8
PASSWORD_MAX = 100
NAME_MAX = 255
PROJECT_DESCRIPTION_MAX = 1000
LOG_MESSAGE_MAX = 10000
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

ProjectStatus = Literal["active", "archived", "deleted"]
RunStatus = Literal["queued", "running", "completed", "failed", "cancelled"]
TriggerType = Literal["manual", "webhook", "scheduled"]
LogLevel = Literal["debug", "info", "warn", "error"]
NodeType = Literal["tool", "llm", "decision", "data"]
NodeStatus = Literal["pending", "running", "completed", "failed"]
ArtifactType = Literal["html", "json", "image", "code", "text"]
IntegrationType = Literal["github", "vercel", "openai", "anthropic", "custom"]
IntegrationStatus = Literal["active", "inactive", "error"]
SortOrder = Literal["asc", "desc"]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case attributes (as stored)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def reject_null(value: Any) -> Any:
    # omitted fields stay untouched; an explicit null would clear a required column
    if value is None:
        raise ValueError("must not be null")
    return value


def metadata_field():
    # the ORM attribute is meta_data because `metadata` is reserved by SQLAlchemy
    return Field(
        default_factory=dict,
        validation_alias=AliasChoices("meta_data", "metadata"),
        serialization_alias="metadata",
    )


# --- Pagination ---
class PaginationInfo(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Paginated(CamelModel, Generic[T]):
    data: List[T]
    pagination: PaginationInfo

    @classmethod
    def build(cls, data: List[T], page: int, limit: int, total: int) -> "Paginated[T]":
        return cls(
            data=data,
            pagination=PaginationInfo(page=page, limit=limit, total=total, total_pages=-(-total // limit)),
        )


# --- Auth Schemas ---
class UserCreate(CamelModel):
    username: str = Field(min_length=USERNAME_MIN, max_length=USERNAME_MAX)
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)


class LoginRequest(CamelModel):
    username: str = Field(min_length=USERNAME_MIN)
    password: str = Field(min_length=PASSWORD_MIN)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class UserPublic(CamelModel):
    id: str
    username: str
    email: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class TokenPayload(CamelModel):
    user_id: str
    username: str
    type: Optional[str] = None
    iat: Optional[int] = None
    exp: Optional[int] = None


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResult(TokenPair):
    user: UserPublic


# --- Project Schemas ---
class ProjectCreate(CamelModel):
    name: str = Field(min_length=1, max_length=NAME_MAX)
    description: Optional[str] = Field(default=None, max_length=PROJECT_DESCRIPTION_MAX)
    github_repo: Optional[str] = Field(default=None, max_length=NAME_MAX)


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX)
    description: Optional[str] = Field(default=None, max_length=PROJECT_DESCRIPTION_MAX)
    github_repo: Optional[str] = Field(default=None, max_length=NAME_MAX)
    status: Optional[ProjectStatus] = None

    @field_validator("name", "status")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        return reject_null(value)


class ProjectOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    github_repo: Optional[str] = None
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime


# --- Integration Schemas ---
class IntegrationCreate(CamelModel):
    project_id: UUID
    type: IntegrationType
    name: str = Field(min_length=1, max_length=NAME_MAX)
    config: Dict[str, Any]
    credentials: Dict[str, Any]


class IntegrationUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX)
    config: Optional[Dict[str, Any]] = None
    credentials: Optional[Dict[str, Any]] = None
    status: Optional[IntegrationStatus] = None

    @field_validator("name", "config", "credentials", "status")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        return reject_null(value)


class IntegrationOut(CamelModel):
    id: str
    project_id: str
    type: IntegrationType
    name: str
    config: Dict[str, Any]
    # names only; credential values never leave the server
    credential_keys: List[str]
    status: IntegrationStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "IntegrationOut":
        return cls(
            id=row.id,
            project_id=row.project_id,
            type=row.type,
            name=row.name,
            config=row.config or {},
            credential_keys=sorted((row.credentials or {}).keys()),
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


# --- Run Schemas ---
class RunCreate(CamelModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=NAME_MAX)
    trigger_type: TriggerType
    config: Dict[str, Any] = Field(default_factory=dict)


class RunStatusUpdate(CamelModel):
    status: RunStatus


class RunOut(CamelModel):
    id: str
    project_id: str
    name: str
    status: RunStatus
    trigger_type: TriggerType
    config: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# --- Log Schemas ---
class LogCreate(CamelModel):
    run_id: Optional[UUID] = None
    project_id: UUID
    level: LogLevel = "info"
    message: str = Field(min_length=1, max_length=LOG_MESSAGE_MAX)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    source: str = Field(min_length=1)
    # event time as observed by the emitter; stamped on insert when absent
    timestamp: Optional[datetime] = None


class LogOut(CamelModel):
    id: str
    run_id: Optional[str] = None
    project_id: str
    level: LogLevel
    message: str
    metadata: Dict[str, Any] = metadata_field()
    source: str
    timestamp: datetime
    created_at: datetime


# --- Graph Schemas ---
class GraphNodeCreate(CamelModel):
    run_id: UUID
    node_id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: NodeType
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphNodeUpdate(CamelModel):
    label: Optional[str] = Field(default=None, min_length=1)
    status: Optional[NodeStatus] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None


class GraphNodeOut(CamelModel):
    id: str
    run_id: str
    node_id: str
    label: str
    type: NodeType
    status: NodeStatus
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    metadata: Dict[str, Any] = metadata_field()
    created_at: datetime
    updated_at: datetime


class GraphEdgeCreate(CamelModel):
    run_id: UUID
    source_node_id: str = Field(min_length=1)
    target_node_id: str = Field(min_length=1)
    label: Optional[str] = None
    type: str = "default"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphEdgeOut(CamelModel):
    id: str
    run_id: str
    source_node_id: str
    target_node_id: str
    label: Optional[str] = None
    type: str
    metadata: Dict[str, Any] = metadata_field()
    created_at: datetime


class RunGraph(CamelModel):
    nodes: List[GraphNodeOut]
    edges: List[GraphEdgeOut]


# --- Cost Schemas ---
class CostCreate(CamelModel):
    run_id: Optional[UUID] = None
    project_id: UUID
    service: str = Field(min_length=1)
    operation: str = Field(min_length=1)
    model: Optional[str] = None
    tokens_input: int = Field(default=0, ge=0)
    tokens_output: int = Field(default=0, ge=0)
    cost_usd: float = Field(ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None


class CostOut(CamelModel):
    id: str
    run_id: Optional[str] = None
    project_id: str
    service: str
    operation: str
    model: Optional[str] = None
    tokens_input: int
    tokens_output: int
    cost_usd: float
    metadata: Dict[str, Any] = metadata_field()
    timestamp: datetime
    created_at: datetime


class CostBreakdownItem(CamelModel):
    key: str
    cost_usd: float
    tokens: int
    operations: int


class CostSummary(CamelModel):
    total_cost_usd: float
    total_tokens_input: int
    total_tokens_output: int
    total_tokens: int
    operations: int
    breakdown: List[CostBreakdownItem]
    remaining_operations: int


# --- Artifact Schemas ---
class ArtifactCreate(CamelModel):
    run_id: UUID
    project_id: UUID
    name: str = Field(min_length=1)
    type: ArtifactType
    content_type: str = Field(min_length=1)
    size_bytes: int = Field(ge=0)
    storage_path: str = Field(min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ArtifactOut(CamelModel):
    id: str
    run_id: str
    project_id: str
    name: str
    type: ArtifactType
    content_type: str
    size_bytes: int
    storage_path: str
    metadata: Dict[str, Any] = metadata_field()
    created_at: datetime


# --- InterTools Schemas ---
class InterToolsMessage(CamelModel):
    html_snippet: str = Field(min_length=1)
    url: AnyHttpUrl
    project_id: UUID
    metadata: Dict[str, Any] = Field(default_factory=dict)


class InterToolsMessageOut(CamelModel):
    id: str
    message: str
    metadata: Dict[str, Any] = metadata_field()
    timestamp: datetime
    created_at: datetime
