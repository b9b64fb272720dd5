import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .jobs.dispatch_worker import ensure_workers_started
from .middleware.logging import LoggingMiddleware
from .routers import jobs as jobs_router
from .routers import reports as reports_router


app = FastAPI(title="envimpact", version=__version__)

# Localhost origins for development, configured origins for production
app_env = os.getenv("APP_ENV")
is_dev = app_env is None or app_env.lower() in {"dev", "development"}

if is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["Location"],
        max_age=86400,
    )
else:
    allowed = [o.strip() for o in os.getenv("API_CORS_ORIGINS", "").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["Location"],
        max_age=86400,
    )

app.add_middleware(LoggingMiddleware)

app.include_router(reports_router.router)
app.include_router(jobs_router.router)

# Start workers immediately to support tests that instantiate TestClient
# without lifespan events.
ensure_workers_started()


@app.on_event("startup")
def _start_workers() -> None:
    ensure_workers_started()


@app.get("/__health")
def health():
    return {"ok": True}


@app.get("/")
def root():
    return {"message": "envimpact API is running. See /__health and /docs."}
