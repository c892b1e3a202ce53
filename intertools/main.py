"""InterTools widget service.

Serves the embeddable click-to-chat script and stores what visitors send from
third-party pages as ``Log`` rows tagged ``source: "intertools"``, in the same
database the API server reads.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from config import InterToolsSettings, configure_logging, get_intertools_settings, load_settings_or_exit

settings = load_settings_or_exit(get_intertools_settings)
configure_logging(settings)

import crud  # noqa: E402
from db import get_db, init_db  # noqa: E402
from errors import AppError  # noqa: E402
from intertools.script import render_chat_script  # noqa: E402
from schemas import InterToolsMessage, InterToolsMessageOut  # noqa: E402
from utils.handlers import add_request_logging, register_error_handlers  # noqa: E402
from utils.responses import fail, ok  # noqa: E402

logger = logging.getLogger(__name__)

SCRIPT_CACHE_SECONDS = 3600

app = FastAPI(title=settings.APP_NAME, version=settings.VERSION)

# any page may embed the widget; no cookies are involved
allow_all = settings.cors_origins == ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
add_request_logging(app)
register_error_handlers(app, settings)

init_db()


def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    """Lenient ``?limit=`` parsing: anything unusable falls back to ``default``."""
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, maximum)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "intertools",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
    }


@app.get("/chat.js")
def chat_script(
    project_id: Optional[str] = Query(None, alias="projectId"),
    theme: str = "light",
    cfg: InterToolsSettings = Depends(get_intertools_settings),
):
    if not project_id:
        return Response(
            "// Error: projectId parameter is required",
            status_code=400,
            media_type="application/javascript",
        )
    script = render_chat_script(cfg.INTERTOOLS_URL, project_id, theme)
    return Response(
        script,
        media_type="application/javascript",
        headers={"Cache-Control": f"public, max-age={SCRIPT_CACHE_SECONDS}"},
    )


@app.post("/api/messages")
def receive_message(
    body: InterToolsMessage,
    db: Session = Depends(get_db),
    cfg: InterToolsSettings = Depends(get_intertools_settings),
):
    try:
        log = crud.create_intertools_log(
            db,
            project_id=str(body.project_id),
            url=str(body.url),
            snippet=body.html_snippet,
            metadata=body.metadata,
            preview_chars=cfg.PREVIEW_CHARS,
        )
    except AppError as e:
        logger.error("Failed to insert log: %s", e.error)
        return fail(500, "Failed to save message")

    logger.info("InterTools message saved: id=%s project=%s url=%s", log.id, log.project_id, body.url)
    return ok({"id": log.id, "message": "Message saved successfully"})


@app.get("/api/messages/{project_id}", summary="Recent messages for a project (debugging)")
def recent_messages(
    project_id: str,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
    cfg: InterToolsSettings = Depends(get_intertools_settings),
):
    count = parse_limit(limit, cfg.DEFAULT_MESSAGE_LIMIT, cfg.MAX_MESSAGE_LIMIT)
    rows = crud.list_intertools_messages(db, project_id, count)
    return ok([InterToolsMessageOut.model_validate(r) for r in rows])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("intertools.main:app", host="0.0.0.0", port=settings.PORT)
