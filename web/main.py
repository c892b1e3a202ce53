"""Web front end: projects dashboard, run creation route and the server-rendered run page.

Like the original front end, this process reads the shared database directly
and does not require a session.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from config import configure_logging, get_web_settings, load_settings_or_exit

settings = load_settings_or_exit(get_web_settings)
configure_logging(settings)

import crud  # noqa: E402
from db import get_db, init_db  # noqa: E402
from models import utcnow  # noqa: E402
from schemas import CostOut, GraphEdgeOut, GraphNodeOut, LogOut, ProjectOut, RunCreate, RunGraph, RunOut  # noqa: E402
from services.costs import format_cost, format_tokens, summarize_costs  # noqa: E402
from services.lifecycle import duration_seconds, refetch_interval  # noqa: E402
from utils.handlers import add_request_logging, register_error_handlers  # noqa: E402
from utils.responses import ok  # noqa: E402
from web.views import (  # noqa: E402
    DEFAULT_COLOR,
    LOG_LEVEL_COLORS,
    RUN_STATUS_COLORS,
    format_duration,
    format_log_time,
    node_cards,
    render_mermaid,
)

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

DASHBOARD_PROJECTS = 100
RECENT_RUNS = 3

app = FastAPI(title=settings.APP_NAME, version=settings.VERSION)
add_request_logging(app)
register_error_handlers(app, settings)

init_db()


def load_run_view(db: Session, run_id: str):
    run = RunOut.model_validate(crud.get_run(db, run_id))
    logs = [LogOut.model_validate(r) for r in crud.list_run_logs(db, run_id)]
    nodes, edges = crud.get_run_graph(db, run_id)
    graph = RunGraph(
        nodes=[GraphNodeOut.model_validate(n) for n in nodes],
        edges=[GraphEdgeOut.model_validate(e) for e in edges],
    )
    costs = [CostOut.model_validate(c) for c in crud.list_costs(db, run_id=run_id)]
    return run, logs, graph, summarize_costs(costs)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "web",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
    }


@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request, db: Session = Depends(get_db)):
    rows, _ = crud.list_projects(db, owner_id=None, limit=DASHBOARD_PROJECTS)
    projects = []
    for row in rows:
        project = ProjectOut.model_validate(row).model_dump()
        runs, _ = crud.list_runs(db, owner_id=None, project_id=row.id, limit=RECENT_RUNS)
        project["runs"] = [
            {"id": r.id, "name": r.name, "status": r.status, "color": RUN_STATUS_COLORS.get(r.status, DEFAULT_COLOR)}
            for r in runs
        ]
        projects.append(project)
    return templates.TemplateResponse(request, "index.html", {"projects": projects})


@app.post("/api/run", status_code=status.HTTP_201_CREATED)
def create_run(body: RunCreate, db: Session = Depends(get_db)):
    run = crud.create_run(db, body)
    logger.info("Run %s queued for project %s", run.id, run.project_id)
    return ok(RunOut.model_validate(run), message="Run queued")


@app.get("/runs/{run_id}/snapshot")
def run_snapshot(run_id: str, db: Session = Depends(get_db)):
    run, logs, graph, summary = load_run_view(db, run_id)
    return ok({
        "run": run,
        "logs": logs,
        "graph": graph,
        "costSummary": summary,
        "refetchInterval": refetch_interval(run.status),
    })


@app.get("/runs/{run_id}", response_class=HTMLResponse)
def run_page(request: Request, run_id: str, db: Session = Depends(get_db)):
    run, logs, graph, summary = load_run_view(db, run_id)
    return templates.TemplateResponse(
        request,
        "run.html",
        {
            "run": run,
            "refresh_seconds": refetch_interval(run.status),
            "status_color": RUN_STATUS_COLORS.get(run.status, DEFAULT_COLOR),
            "duration": format_duration(duration_seconds(run.started_at, run.completed_at, utcnow())),
            "costs": summary,
            "total_cost": format_cost(summary.total_cost_usd),
            "total_tokens": format_tokens(summary.total_tokens),
            "breakdown": [
                {"key": b.key, "cost": format_cost(b.cost_usd), "operations": b.operations}
                for b in summary.breakdown
            ],
            "mermaid": render_mermaid(graph.nodes, graph.edges),
            "nodes": node_cards(graph.nodes),
            "logs": [
                {
                    "time": format_log_time(log.timestamp),
                    "level": log.level,
                    "color": LOG_LEVEL_COLORS.get(log.level, DEFAULT_COLOR),
                    "source": log.source,
                    "message": log.message,
                }
                for log in logs
            ],
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web.main:app", host="0.0.0.0", port=settings.PORT)
