from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from config import configure_logging, load_settings_or_exit

settings = load_settings_or_exit()
configure_logging(settings)

from db import init_db  # noqa: E402
from routers import auth as auth_router  # noqa: E402
from routers import costs as costs_router  # noqa: E402
from routers import graph as graph_router  # noqa: E402
from routers import integrations as integrations_router  # noqa: E402
from routers import logs as logs_router  # noqa: E402
from routers import projects as projects_router  # noqa: E402
from routers import runs as runs_router  # noqa: E402
from utils.handlers import add_request_logging, register_error_handlers  # noqa: E402

API_PREFIX = "/api"

app = FastAPI(title=settings.APP_NAME, version=settings.VERSION)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
add_request_logging(app)
register_error_handlers(app, settings)

init_db()


@app.get("/health", tags=["System"], summary="Server health check")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
    }


app.include_router(auth_router.router, prefix=API_PREFIX)
app.include_router(projects_router.router, prefix=API_PREFIX)
app.include_router(integrations_router.router, prefix=API_PREFIX)
app.include_router(runs_router.router, prefix=API_PREFIX)
app.include_router(logs_router.router, prefix=API_PREFIX)
app.include_router(graph_router.router, prefix=API_PREFIX)
app.include_router(costs_router.router, prefix=API_PREFIX)


# Describe the bearer scheme in the generated OpenAPI document

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version=settings.VERSION,
        routes=app.routes,
        description="LangChain Flow API: projects, runs and their logs, graph and costs",
    )
    components = openapi_schema.get("components", {})
    security_schemes = components.get("securitySchemes", {})
    if "BearerJWT" in security_schemes:
        security_schemes["BearerJWT"]["description"] = (
            "Paste the accessToken returned by /api/auth/login or /api/auth/register. "
            "Refresh tokens are only accepted by /api/auth/refresh."
        )
    openapi_schema["components"] = components
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
