"""CORS for the dashboard front end."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from focusflow.config import Settings

# Any local dev server port, development only
_LOCALHOST_ORIGIN_RE = r"http://(localhost|127\.0\.0\.1)(:\d+)?"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured dashboard origins (plus localhost in development)."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=_LOCALHOST_ORIGIN_RE if settings.environment == "development" else None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
