"""
Provisioning Engine
===================
The only place that imports pulumi.automation for stack handling. The
lifecycle manager talks to an engine through two seams:

  engine.create_or_select_stack(identity, graph) → handle
  handle.set_all_config / up / refresh / destroy / cancel

The production engine returns a real `pulumi.automation.Stack` as the
handle. Tests swap in a fake with the same surface (see tests/conftest.py).

Pulumi owns the upsert and the per-stack lock. Two requests resolving the
same identity both get a handle; the second `up` while one is running fails
with ConcurrentUpdateError, which translate_engine_error maps to a conflict.
"""
from __future__ import annotations

from typing import Protocol

from pulumi import automation as auto

from shared.errors import (
    StackConflictError,
    StackServiceError,
    UpstreamUnavailableError,
)
from shared.logger import get_logger
from shared.models import StackIdentity

from .graph import ResourceGraph
from .program import inline_program

logger = get_logger(__name__)

# stderr fragments that mean the backend or provider could not be reached,
# as opposed to a request it understood and rejected.
_UNREACHABLE_MARKERS = (
    "connection refused",
    "connection reset",
    "could not reach",
    "no such host",
    "network is unreachable",
    "i/o timeout",
    "tls handshake timeout",
    "service unavailable",
    "bad gateway",
    "[502]",
    "[503]",
    "[504]",
)


class ProvisioningEngine(Protocol):
    def create_or_select_stack(self, identity: StackIdentity, graph: ResourceGraph):
        ...


class PulumiEngine:
    """Resolves stacks through Pulumi's LocalWorkspace with an inline program."""

    def __init__(self, work_dir: str | None = None):
        self.work_dir = work_dir

    def create_or_select_stack(self, identity: StackIdentity, graph: ResourceGraph) -> auto.Stack:
        opts = auto.LocalWorkspaceOptions(work_dir=self.work_dir) if self.work_dir else None
        return auto.create_or_select_stack(
            stack_name=identity.stack_name,
            project_name=identity.project_name,
            program=inline_program(graph),
            opts=opts,
        )


def translate_engine_error(
    exc: BaseException,
    default: type[StackServiceError] = StackServiceError,
) -> StackServiceError:
    """
    Map an exception raised by Pulumi (or the OS, when the CLI is missing)
    onto the service taxonomy. Errors already in the taxonomy pass through.
    The description is the engine's own message, unmodified.
    """
    if isinstance(exc, StackServiceError):
        return exc
    message = str(exc) or type(exc).__name__
    if isinstance(exc, (auto.ConcurrentUpdateError, auto.StackAlreadyExistsError)):
        return StackConflictError(message)
    if isinstance(exc, OSError):
        return UpstreamUnavailableError(message)
    if isinstance(exc, auto.CommandError) and _is_unreachable(exc):
        return UpstreamUnavailableError(message)
    # Provider rejections, program errors and "nothing to cancel" are terminal.
    return default(message)


def _is_unreachable(exc: auto.CommandError) -> bool:
    text = f"{getattr(exc, 'stderr', '') or ''}\n{exc}".lower()
    return any(marker in text for marker in _UNREACHABLE_MARKERS)
