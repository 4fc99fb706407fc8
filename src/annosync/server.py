"""Flask app exposing the sync endpoint.

Routes:
  POST /api/qa-issues  run one batch (any other method answers 405)
  GET  /healthz        liveness check
"""

from __future__ import annotations

import os
import time
import uuid
from collections.abc import Callable

import requests
from flask import Flask, Response, g, jsonify, request

from .config import ServiceConfig, load_service_config
from .logging import configure_logging, get_logger
from .service import dispatch

SYNC_ROUTE = "/api/qa-issues"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def create_app(
    config_factory: Callable[[], ServiceConfig] | None = None,
    session_factory: Callable[[], requests.Session] | None = None,
) -> Flask:
    """Build the app; ``config_factory`` is called per request so rotated env vars apply.

    ``session_factory`` supplies the HTTP session used for GitHub calls (a fresh
    ``requests.Session`` per request when omitted).
    """
    app = Flask(__name__)
    factory = config_factory or load_service_config

    @app.before_request
    def _start_timer() -> None:
        g.request_id = str(uuid.uuid4())
        g.started = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        duration_ms = (time.perf_counter() - g.get("started", time.perf_counter())) * 1000
        get_logger().info(
            f"{request.method} {request.path} -> {response.status_code}",
            request_id=g.get("request_id"),
            duration_ms=round(duration_ms, 2),
        )
        return response

    @app.route("/healthz", methods=["GET"])
    def healthz() -> Response:
        return jsonify({"status": "ok"})

    @app.route(SYNC_ROUTE, methods=ALL_METHODS, provide_automatic_options=False)
    def qa_issues() -> tuple[Response, int, dict[str, str]]:
        result = dispatch(
            request.method,
            dict(request.headers),
            request.get_data(),
            factory(),
            session=session_factory() if session_factory else None,
        )
        return jsonify(result.body), result.status, result.headers

    return app


def run_server(host: str | None = None, port: int | None = None, debug: bool = False) -> None:  # pragma: no cover
    config = load_service_config()
    configure_logging(
        json_logging=os.getenv("ANNOSYNC_LOG_JSON") == "1",
        level=os.getenv("ANNOSYNC_LOG_LEVEL", "INFO"),
        secrets=[s for s in (config.secret, config.token) if s],
    )
    app = create_app()
    app.run(
        host=host or os.getenv("ANNOSYNC_HOST", "127.0.0.1"),
        port=port or int(os.getenv("ANNOSYNC_PORT", "8001")),
        debug=debug,
    )


__all__ = ["SYNC_ROUTE", "create_app", "run_server"]
