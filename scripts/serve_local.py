"""
Local API Server
================
Development-only listener: a small WSGI app that turns each HTTP request
into an API Gateway proxy event and hands it to bucket_service.handler.
Served threaded, so a long `up` does not block a `cancel` sent from another
terminal.

Usage:
  python scripts/serve_local.py --port 8080
"""
from __future__ import annotations

import argparse
import os
import sys

from werkzeug import run_simple
from werkzeug.wrappers import Request, Response

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "services"))

from bucket_service.handler import handler  # noqa: E402
from shared.logger import get_logger  # noqa: E402

logger = get_logger("serve_local")


def to_proxy_event(request: Request) -> dict:
    return {
        "httpMethod": request.method,
        "path": request.path,
        "headers": dict(request.headers),
        "queryStringParameters": request.args.to_dict() or None,
        "body": request.get_data(as_text=True),
        "isBase64Encoded": False,
    }


@Request.application
def app(request: Request) -> Response:
    resp = handler(to_proxy_event(request), None)
    return Response(resp["body"], status=resp["statusCode"], headers=resp.get("headers", {}))


def serve(host: str = "127.0.0.1", port: int = 8080, **kwargs) -> None:
    kwargs["threaded"] = kwargs.get("threaded", True)  # cancel must not wait behind up
    logger.info("Listening", extra={"host": host, "port": port})
    run_simple(host, port, app, use_reloader=False, **kwargs)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Serve the bucket API locally")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8080")))
    args = parser.parse_args()

    serve(args.host, args.port)
