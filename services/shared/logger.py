"""
Structured JSON Logging for the Bucket Stack API
================================================
Outputs one JSON line per log record. Pulumi progress lines, lifecycle
transitions and request failures all go through the same formatter, so a
single query can follow one stack through a whole request:

    fields @timestamp, stack, action, message
    | filter project = "pulumi_api_rest" and level = "ERROR"

Usage:
  from shared.logger import get_logger, stack_logger
  logger = get_logger(__name__)
  log = stack_logger(__name__, identity)
  log.info("Created/Selected stack")

Output:
  {"timestamp":"2024-01-01T00:00:00Z","level":"INFO","service":"bucket_service.manager",
   "message":"Created/Selected stack","project":"pulumi_api_rest","stack":"dev"}
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, MutableMapping

# Standard logging.LogRecord fields we don't want in the output
_STDLIB_FIELDS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}

_configured = False


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        log_obj: dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "service": record.name,
            "message": record.message,
        }

        for key, value in record.__dict__.items():
            if key not in _STDLIB_FIELDS:
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class _StackAdapter(logging.LoggerAdapter):
    """Stamps project/stack on every record, merged with per-call extras."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger configured to emit structured JSON to stdout.
    Idempotent, safe to call multiple times.
    """
    global _configured
    if not _configured:
        root = logging.getLogger()
        formatter = _JsonFormatter()
        if root.handlers:
            for h in root.handlers:
                h.setFormatter(formatter)
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            root.addHandler(handler)
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        root.setLevel(getattr(logging, log_level, logging.INFO))
        _configured = True
    return logging.getLogger(name)


def stack_logger(name: str, identity) -> logging.LoggerAdapter:
    """Logger bound to one stack identity (project + stack name)."""
    return _StackAdapter(
        get_logger(name),
        {"project": identity.project_name, "stack": identity.stack_name},
    )
