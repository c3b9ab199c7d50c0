"""Middleware registration."""

from fastapi import FastAPI

from focusflow.config import Settings
from focusflow.middleware.cors import setup_cors
from focusflow.middleware.error_handler import setup_error_handlers
from focusflow.middleware.logging import setup_logging
from focusflow.middleware.rate_limit import RateLimitMiddleware
from focusflow.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    The last middleware added runs outermost, so the order below yields
    CORS -> request id -> rate limit -> routes. Request ids and CORS headers
    therefore also land on 429 responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
