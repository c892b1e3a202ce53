import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text

from db import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    github_repo = Column(String(255), nullable=True)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Integration(Base):
    __tablename__ = "integrations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    type = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False)
    config = Column(JSON, default=dict, nullable=False)
    credentials = Column(JSON, default=dict, nullable=False)
    status = Column(String(20), default="active", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Run(Base):
    __tablename__ = "runs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    status = Column(String(20), default="queued", index=True, nullable=False)
    trigger_type = Column(String(20), nullable=False)
    config = Column(JSON, default=dict, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Log(Base):
    __tablename__ = "logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    run_id = Column(String(36), ForeignKey("runs.id"), index=True, nullable=True)
    project_id = Column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    level = Column(String(10), default="info", nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta_data = Column("metadata", JSON, default=dict, nullable=False)
    source = Column(String(100), index=True, nullable=False)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class GraphNode(Base):
    __tablename__ = "graph_nodes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    run_id = Column(String(36), ForeignKey("runs.id"), index=True, nullable=False)
    node_id = Column(String(255), nullable=False)
    label = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    position_x = Column(Float, nullable=True)
    position_y = Column(Float, nullable=True)
    meta_data = Column("metadata", JSON, default=dict, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class GraphEdge(Base):
    __tablename__ = "graph_edges"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    run_id = Column(String(36), ForeignKey("runs.id"), index=True, nullable=False)
    # node-level identifiers, not graph_nodes.id
    source_node_id = Column(String(255), nullable=False)
    target_node_id = Column(String(255), nullable=False)
    label = Column(String(255), nullable=True)
    type = Column(String(50), default="default", nullable=False)
    meta_data = Column("metadata", JSON, default=dict, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Cost(Base):
    __tablename__ = "costs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    run_id = Column(String(36), ForeignKey("runs.id"), index=True, nullable=True)
    project_id = Column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    service = Column(String(100), nullable=False)
    operation = Column(String(100), nullable=False)
    model = Column(String(100), nullable=True)
    tokens_input = Column(Integer, default=0, nullable=False)
    tokens_output = Column(Integer, default=0, nullable=False)
    cost_usd = Column(Float, default=0.0, nullable=False)
    meta_data = Column("metadata", JSON, default=dict, nullable=False)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Artifact(Base):
    __tablename__ = "artifacts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    run_id = Column(String(36), ForeignKey("runs.id"), index=True, nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    content_type = Column(String(100), nullable=False)
    size_bytes = Column(Integer, default=0, nullable=False)
    storage_path = Column(String(1024), nullable=False)
    meta_data = Column("metadata", JSON, default=dict, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
