"""
Stack Lifecycle Manager
=======================
Resolves one stack for one request and runs one verb against it.

  resolve:  validate spec → declare graph → create-or-select stack → set config
  run:      up | refresh | destroy | cancel

The stack state machine (Absent / Active / OperationInFlight) lives in Pulumi's
state backend, not here. Nothing is cached between requests: every request
resolves its own handle and re-applies the full config.

Progress output from Pulumi is streamed line by line to the
`bucket_service.progress` logger for every verb except cancel.
"""
from __future__ import annotations

from typing import Callable

from shared.errors import (
    InvalidSpecificationError,
    MissingOutputError,
    StackResolutionError,
    StackServiceError,
    UnknownActionError,
)
from shared.logger import get_logger, stack_logger
from shared.models import LifecycleAction, LifecycleResult, ResourceSpec, StackIdentity

from .config import ServiceSettings, apply_stack_config, build_stack_config
from .engine import ProvisioningEngine, translate_engine_error
from .graph import WEBSITE_URL_OUTPUT, GraphError, define_bucket_site

logger = get_logger(__name__)


class BucketStackManager:
    def __init__(self, identity: StackIdentity, handle):
        self.identity = identity
        self.name = identity.stack_name
        self.handle = handle
        self._log = stack_logger(__name__, identity)
        self._progress = stack_logger("bucket_service.progress", identity)

    @classmethod
    def resolve(
        cls,
        identity: StackIdentity,
        spec: ResourceSpec,
        engine: ProvisioningEngine,
        settings: ServiceSettings | None = None,
    ) -> "BucketStackManager":
        """Create or select the stack for `identity` and push config onto it."""
        settings = settings or ServiceSettings.from_env()
        log = stack_logger(__name__, identity)

        if not isinstance(spec, ResourceSpec):
            raise InvalidSpecificationError(f"expected a ResourceSpec, got {type(spec).__name__}")
        try:
            graph = define_bucket_site(spec)
            graph.topological_order()
        except GraphError as e:
            raise InvalidSpecificationError(str(e)) from e

        try:
            handle = engine.create_or_select_stack(identity, graph)
        except Exception as e:
            log.error("Failed to set up a workspace: %s", e)
            raise translate_engine_error(e, StackResolutionError) from e
        log.info("Created/Selected stack %r", identity.stack_name)

        apply_stack_config(handle, build_stack_config(handle.name, spec, settings))
        return cls(identity, handle)

    def run(self, action: str) -> LifecycleResult:
        try:
            verb = LifecycleAction(action)
        except ValueError:
            raise UnknownActionError(str(action)) from None

        runner: Callable[[], LifecycleResult] = {
            LifecycleAction.UP: self._up,
            LifecycleAction.REFRESH: self._refresh,
            LifecycleAction.DESTROY: self._destroy,
            LifecycleAction.CANCEL: self._cancel,
        }[verb]

        try:
            return runner()
        except StackServiceError:
            raise
        except Exception as e:
            self._log.error("Failed to %s stack: %s", verb.value, self.name, extra={"action": verb.value})
            raise translate_engine_error(e) from e

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def _up(self) -> LifecycleResult:
        self._log.info("Running stack: %s", self.name, extra={"action": "up"})
        result = self.handle.up(on_output=self._stream("up"))

        output = result.outputs.get(WEBSITE_URL_OUTPUT)
        value = getattr(output, "value", None)
        if not isinstance(value, str):
            raise MissingOutputError(WEBSITE_URL_OUTPUT, value)
        return LifecycleResult(
            action=LifecycleAction.UP,
            stack_name=self.name,
            message=f"Website URL: {value}",
            website_url=value,
        )

    def _refresh(self) -> LifecycleResult:
        self._log.info("Refreshing stack: %s", self.name, extra={"action": "refresh"})
        self.handle.refresh(on_output=self._stream("refresh"))
        return LifecycleResult(
            action=LifecycleAction.REFRESH,
            stack_name=self.name,
            message=f"Stack refreshed successfully: {self.name}",
        )

    def _destroy(self) -> LifecycleResult:
        self._log.info("Starting stack destroy: %s", self.name, extra={"action": "destroy"})
        self.handle.destroy(on_output=self._stream("destroy"))
        return LifecycleResult(
            action=LifecycleAction.DESTROY,
            stack_name=self.name,
            message=f"Stack successfully destroyed: {self.name}",
        )

    def _cancel(self) -> LifecycleResult:
        self._log.info("Starting stack cancel: %s", self.name, extra={"action": "cancel"})
        self.handle.cancel()
        return LifecycleResult(
            action=LifecycleAction.CANCEL,
            stack_name=self.name,
            message=f"Stack successfully canceled: {self.name}",
        )

    def _stream(self, action: str) -> Callable[[str], None]:
        def on_output(line: str) -> None:
            line = line.rstrip()
            if line:
                self._progress.info(line, extra={"action": action})

        return on_output
