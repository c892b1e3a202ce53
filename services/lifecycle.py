"""Run status lifecycle.

Runs are created ``queued``. Whatever consumes the queue (the worker is an
external collaborator) advances them through the transitions below; the API
only checks that a requested move is legal and stamps the timestamps.
"""
from datetime import datetime
from typing import Optional

from errors import InvalidTransitionError

QUEUED = "queued"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"

ACTIVE_STATUSES = frozenset({QUEUED, RUNNING})
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED, CANCELLED})

TRANSITIONS = {
    QUEUED: {RUNNING, CANCELLED, FAILED},
    RUNNING: {COMPLETED, FAILED, CANCELLED},
    COMPLETED: set(),
    FAILED: set(),
    CANCELLED: set(),
}

POLL_INTERVAL_SECONDS = 2.0


def is_active(status: str) -> bool:
    return status in ACTIVE_STATUSES


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def apply_transition(run, target: str, now: datetime) -> None:
    """Move ``run`` to ``target`` in place, stamping started/completed times."""
    if not can_transition(run.status, target):
        raise InvalidTransitionError(f"Cannot move run from {run.status} to {target}")
    if target == RUNNING and run.started_at is None:
        run.started_at = now
    if target in TERMINAL_STATUSES:
        run.completed_at = now
    run.status = target


def refetch_interval(status: Optional[str]) -> Optional[float]:
    """Seconds until the next poll, or None once the run has settled."""
    if status in ACTIVE_STATUSES:
        return POLL_INTERVAL_SECONDS
    return None


def duration_seconds(started_at: Optional[datetime], completed_at: Optional[datetime], now: datetime) -> Optional[int]:
    if started_at is None:
        return None
    end = completed_at or now
    return int(round((end - started_at).total_seconds()))
