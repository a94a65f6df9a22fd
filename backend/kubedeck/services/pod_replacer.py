"""
Pod replacement.

Many Pod fields are immutable once the object exists, so an edit is carried out
as delete, wait for the name to be released, then create from the new manifest.

A crash or cancellation between the delete and the create leaves the pod
absent. That window cannot be closed without a durable intent log; instead
every phase transition is reported (logged, and pushed to an optional
observer) before the next step starts, and failures say which step failed and
whether the original pod is already gone.

Two concurrent replaces of the same pod are not coordinated and may
interleave.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from kubedeck.config import Settings, get_settings
from kubedeck.exceptions import AppException, NotFound, ReplaceFailed, SettleTimeout, ValidationError
from kubedeck.services.resource_gateway import ResourceGateway, ResourceRef

logger = structlog.get_logger(__name__)


class ReplacePhase(str, Enum):
    DELETING = "Deleting"
    AWAITING_SETTLE = "AwaitingSettle"
    CREATING = "Creating"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class ReplaceOperation:
    """Transient record of one replace request."""

    namespace: str
    pod_name: str
    target: Any
    phase: ReplacePhase = ReplacePhase.DELETING
    deleted: bool = False
    failed_step: str | None = None
    error: AppException | None = None
    steps: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(kind="Pod", name=self.pod_name, namespace=self.namespace)

    def event(self, message: str) -> dict[str, Any]:
        data: dict[str, Any] = {
            "phase": self.phase.value,
            "podName": self.pod_name,
            "namespace": self.namespace,
            "message": message,
        }
        if self.phase is ReplacePhase.FAILED and self.error is not None:
            data["step"] = self.failed_step
            data["deleted"] = self.deleted
            data["code"] = self.error.code
        return data

    def result(self) -> dict[str, Any]:
        return {"status": "success", "podName": self.pod_name, "steps": list(self.steps)}


Observer = Callable[[dict[str, Any]], Awaitable[None]]


class PodReplacer:
    """Delete, settle and recreate a pod from a new manifest."""

    def __init__(
        self,
        gateway: ResourceGateway,
        settings: Settings | None = None,
        *,
        settle_timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._gateway = gateway
        self._settle_timeout = settle_timeout if settle_timeout is not None else settings.settle_timeout_seconds
        self._poll_interval = poll_interval if poll_interval is not None else settings.settle_poll_interval_seconds

    @staticmethod
    def check_target(namespace: str, name: str, manifest: Any) -> None:
        """The new manifest must name the pod being replaced."""
        metadata = manifest.metadata
        if metadata is None or metadata.name != name:
            raise ValidationError(
                f"Manifest name '{getattr(metadata, 'name', None)}' does not match pod '{name}'"
            )
        if metadata.namespace and metadata.namespace != namespace:
            raise ValidationError(
                f"Manifest namespace '{metadata.namespace}' does not match '{namespace}'"
            )

    async def replace(
        self,
        namespace: str,
        name: str,
        manifest: Any,
        observer: Observer | None = None,
    ) -> ReplaceOperation:
        """Replace pod ``namespace/name`` with ``manifest``.

        Raises ReplaceFailed when any step fails; a failed delete never leads
        to a create attempt.
        """
        self.check_target(namespace, name, manifest)

        op = ReplaceOperation(namespace=namespace, pod_name=name, target=manifest)

        await self._transition(op, ReplacePhase.DELETING, "deleting existing pod", observer)
        try:
            await self._gateway.delete(op.ref)
            op.deleted = True
            await self._record(op, "existing pod deleted", observer)
        except NotFound:
            await self._record(op, "pod was already absent", observer)
        except AppException as exc:
            await self._fail(op, "delete", exc, observer)

        if op.deleted:
            await self._transition(op, ReplacePhase.AWAITING_SETTLE, "waiting for pod name to be released", observer)
            try:
                await self._await_settle(op)
            except AppException as exc:
                await self._fail(op, "settle", exc, observer)

        await self._transition(op, ReplacePhase.CREATING, "creating replacement pod", observer)
        try:
            await self._gateway.create(op.ref, op.target)
        except AppException as exc:
            await self._fail(op, "create", exc, observer)

        await self._transition(op, ReplacePhase.DONE, "replacement pod created", observer)
        return op

    async def _await_settle(self, op: ReplaceOperation) -> None:
        deadline = time.monotonic() + self._settle_timeout
        while True:
            try:
                await self._gateway.get(op.ref)
            except NotFound:
                return
            if time.monotonic() >= deadline:
                raise SettleTimeout(
                    f"Pod {op.namespace}/{op.pod_name} still exists after {self._settle_timeout:g}s"
                )
            await asyncio.sleep(self._poll_interval)

    async def _record(self, op: ReplaceOperation, message: str, observer: Observer | None) -> None:
        event = op.event(message)
        op.steps.append(event)
        logger.info("replace.phase", phase=op.phase.value, pod=f"{op.namespace}/{op.pod_name}", detail=message)
        if observer is not None:
            await observer(event)

    async def _transition(
        self,
        op: ReplaceOperation,
        phase: ReplacePhase,
        message: str,
        observer: Observer | None,
    ) -> None:
        op.phase = phase
        await self._record(op, message, observer)

    async def _fail(self, op: ReplaceOperation, step: str, exc: AppException, observer: Observer | None) -> None:
        op.phase = ReplacePhase.FAILED
        op.failed_step = step
        op.error = exc
        failure = ReplaceFailed(step, exc, deleted=op.deleted)
        logger.warning(
            "replace.failed",
            pod=f"{op.namespace}/{op.pod_name}",
            step=step,
            deleted=op.deleted,
            code=exc.code,
            error=exc.message,
        )
        await self._record(op, failure.message, observer)
        raise failure from exc
