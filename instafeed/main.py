"""
instafeed/main.py — FastAPI application entry point for the login relay.

Run it with:
    python -m instafeed.main
or:
    uvicorn instafeed.main:app --port 3000 --reload

What this file does:
  - Creates the FastAPI app
  - Mounts the Instagram login routes
  - Configures logging so every login attempt shows up in the terminal
  - Prints a startup banner with the callback URL Instagram must have registered
  - Runs the uvicorn server

The server keeps no state: it only bounces the browser between Instagram and
the frontend.
"""

import logging
import sys
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import instagram_routes
from .config import get_settings


# ─────────────────────────────────────────────
# LOGGING
# Format: timestamp | level | logger name | message
# ─────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
    datefmt="%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# Quiet down the noisy libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)  # we log /auth requests ourselves

logger = logging.getLogger("instafeed.server")


# ─────────────────────────────────────────────
# STARTUP / SHUTDOWN LIFECYCLE
# ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    print()
    print("━" * 52)
    print("  ◈  INSTAFEED  LOGIN  RELAY")
    print("━" * 52)

    if not settings.instagram_client_id or not settings.instagram_client_secret:
        print("  ✗  INSTAGRAM_CLIENT_ID / INSTAGRAM_CLIENT_SECRET not set")
        print("     Every login will end on /login-error until they are.")
    else:
        print(f"  ✓  Instagram app {settings.instagram_client_id} configured")

    print(f"  ✓  Frontend:      {settings.frontend_url}")
    print(f"  ✓  Redirect URI:  {settings.redirect_uri}")
    print("     (must match the URI registered in the Instagram app exactly)")
    print()
    print(f"  Endpoints:")
    print(f"     GET    {settings.base_url}/auth/instagram")
    print(f"     GET    {settings.base_url}/auth/instagram/callback")
    print(f"     GET    {settings.base_url}/health")
    print("━" * 52)
    print()

    yield

    print("\n  Server shutting down.")


# ─────────────────────────────────────────────
# FASTAPI APP
# ─────────────────────────────────────────────

app = FastAPI(
    title="Instafeed Login Relay",
    description="Instagram Business Login relay: exchanges the authorization code and hands the token to the frontend.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(instagram_routes.router, prefix="/auth/instagram", tags=["auth"])


@app.get("/health")
def health():
    return {"status": "ok"}


# ─────────────────────────────────────────────
# REQUEST TIMING MIDDLEWARE
# ─────────────────────────────────────────────

@app.middleware("http")
async def log_requests(request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    # Only log the login flow (skip /health polling noise)
    if request.url.path.startswith("/auth/"):
        status = response.status_code
        location = response.headers.get("location", "")
        outcome = "✗" if location.endswith("/login-error") or status >= 400 else "✓"
        logger.info(f"{outcome} {request.method} {request.url.path} → {status}  ({duration_ms:.0f}ms)")

    return response


# ─────────────────────────────────────────────
# GLOBAL ERROR HANDLER
# ─────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception on {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {type(exc).__name__}"},
    )


def run():
    settings = get_settings()
    uvicorn.run(
        "instafeed.main:app",
        host=settings.host,
        port=settings.port,
        log_level="warning",  # Uvicorn's own logs — we handle ours above
    )


if __name__ == "__main__":
    run()
