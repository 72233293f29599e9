"""
Bucket Service Handler
======================
Handles four routes, all with the body {"bucketName": ..., "customMessage": ...}:
  POST   /bucket/         → up       (create or update the website bucket)
  DELETE /bucket/         → destroy
  POST   /bucket/refresh  → refresh
  POST   /bucket/cancel   → cancel   (abort the in-flight operation)

The handler is thin: parse body → resolve stack → run verb → render JSON.
It takes API Gateway proxy events, so it runs behind API Gateway or behind
scripts/serve_local.py unchanged.

Failures are rendered as {"error": <description>, "kind": <kind>} with the
status code of the error kind (see shared/errors.py).
"""
from __future__ import annotations

import base64
import json

from pydantic import ValidationError

from shared.errors import InvalidSpecificationError, StackServiceError
from shared.logger import get_logger
from shared.models import LifecycleAction, ResourceSpec

from .config import ServiceSettings
from .engine import PulumiEngine
from .manager import BucketStackManager

logger = get_logger(__name__)

engine = PulumiEngine(work_dir=ServiceSettings.from_env().work_dir)

ROUTES = {
    ("POST", "/bucket"): LifecycleAction.UP,
    ("DELETE", "/bucket"): LifecycleAction.DESTROY,
    ("POST", "/bucket/refresh"): LifecycleAction.REFRESH,
    ("POST", "/bucket/cancel"): LifecycleAction.CANCEL,
}


# ---------------------------------------------------------------------------
# Main handler — dispatches by HTTP method + path
# ---------------------------------------------------------------------------

def handler(event: dict, context) -> dict:
    http_method = (event.get("httpMethod") or "").upper()
    path = (event.get("path") or "").rstrip("/") or "/"

    action = ROUTES.get((http_method, path))
    if action is None:
        return _response(404, {"error": "Not Found"})

    try:
        spec = _parse_spec(event)
        settings = ServiceSettings.from_env()
        manager = BucketStackManager.resolve(settings.identity(), spec, engine, settings)
        result = manager.run(action.value)
    except StackServiceError as e:
        logger.warning(
            "Bucket %s failed: %s", action.value, e,
            extra={"http_method": http_method, "path": path, "kind": e.kind.value},
        )
        body = {"error": str(e), "kind": e.kind.value}
        if isinstance(e, InvalidSpecificationError) and e.details:
            body["details"] = e.details
        return _response(e.kind.status_code, body)
    except Exception as e:
        logger.exception(
            "Unhandled exception in bucket_service handler",
            extra={"http_method": http_method, "path": path},
        )
        return _response(500, {"error": str(e) or type(e).__name__, "kind": "internal"})

    return _response(200, {"message": result.message})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_spec(event: dict) -> ResourceSpec:
    raw = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except ValueError as e:
            raise InvalidSpecificationError(f"invalid base64 body: {e}") from e
    try:
        return ResourceSpec.model_validate_json(raw)
    except ValidationError as e:
        details = e.errors(include_url=False, include_context=False, include_input=False)
        raise InvalidSpecificationError(_describe(e), details) from e


def _describe(error: ValidationError) -> str:
    first = error.errors(include_url=False)[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


def _response(status_code: int, body: dict) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }
