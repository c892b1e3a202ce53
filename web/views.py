"""Presentation helpers for the run observability page.

The graph is shown as a Mermaid text diagram plus one card per node; it is a
placeholder rather than an interactive graph.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from schemas import GraphEdgeOut, GraphNodeOut

NODE_SHAPES: Dict[str, Tuple[str, str]] = {
    "tool": ("[", "]"),
    "llm": ("(", ")"),
    "decision": ("{", "}"),
    "data": ("[[", "]]"),
}

NODE_STATUS_COLORS = {
    "pending": "#9CA3AF",
    "running": "#3B82F6",
    "completed": "#10B981",
    "failed": "#EF4444",
}

RUN_STATUS_COLORS = {
    "queued": "#F59E0B",
    "running": "#3B82F6",
    "completed": "#10B981",
    "failed": "#EF4444",
    "cancelled": "#6B7280",
}

LOG_LEVEL_COLORS = {
    "debug": "#6B7280",
    "info": "#2563EB",
    "warn": "#D97706",
    "error": "#DC2626",
}

DEFAULT_COLOR = "#6B7280"


def node_shape(node_type: str) -> Tuple[str, str]:
    return NODE_SHAPES.get(node_type, ("[", "]"))


def render_mermaid(nodes: Iterable[GraphNodeOut], edges: Iterable[GraphEdgeOut]) -> str:
    lines = ["graph TD"]
    for node in nodes:
        left, right = node_shape(node.type)
        lines.append(f"  {node.node_id}{left}{node.label}{right}")
    for edge in edges:
        lines.append(f"  {edge.source_node_id} --> {edge.target_node_id}")
    return "\n".join(lines) + "\n"


def node_cards(nodes: Iterable[GraphNodeOut]) -> List[Dict[str, str]]:
    return [
        {
            "node_id": n.node_id,
            "label": n.label,
            "type": n.type,
            "status": n.status,
            "color": NODE_STATUS_COLORS.get(n.status, DEFAULT_COLOR),
        }
        for n in nodes
    ]


def format_log_time(ts: datetime) -> str:
    return ts.strftime("%H:%M:%S.") + f"{ts.microsecond // 1000:03d}"


def format_duration(seconds: Optional[int]) -> str:
    return "N/A" if seconds is None else f"{seconds}s"


class LogFollower:
    """Tracks whether the log pane should stick to the newest entry.

    Following stays on until the viewer scrolls away from the bottom, and
    comes back once they return to within ``slack`` pixels of it.
    """

    def __init__(self, slack: int = 10):
        self.slack = slack
        self.following = True

    def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        self.following = scroll_top + client_height >= scroll_height - self.slack
        return self.following

    def scroll_target(self, current_top: float, scroll_height: float) -> float:
        """Where the pane should be after new entries arrive."""
        return scroll_height if self.following else current_top
