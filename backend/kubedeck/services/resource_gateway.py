"""
Resource gateway.

Stateless list/get/create/delete over the supported kinds, plus pod logs and
manifest retrieval. Blocking client calls run in worker threads; control-plane
errors are classified into the application's error taxonomy.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kubedeck.exceptions import (
    AlreadyExists,
    AppException,
    NotFound,
    UpstreamError,
    ValidationError,
)
from kubedeck.services import manifest_codec
from kubedeck.services.cluster_client import KubeClientProvider
from kubedeck.services.kinds import KindSpec, Operation, get_kind

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResourceRef:
    kind: str
    name: str | None = None
    namespace: str | None = None

    @property
    def spec(self) -> KindSpec:
        return get_kind(self.kind)

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


def _api_message(exc: ApiException) -> str:
    body = getattr(exc, "body", None)
    if body:
        try:
            payload = json.loads(body)
        except (TypeError, ValueError):
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
    return str(exc.reason or exc)


def classify_api_error(exc: ApiException, ref: ResourceRef | None = None) -> AppException:
    """Map a control-plane error onto the error taxonomy."""
    message = _api_message(exc)
    target = str(ref) if ref else "resource"
    details = {"status": exc.status} if exc.status else None
    if exc.status == 404:
        return NotFound(f"{target} not found: {message}", details=details)
    if exc.status == 409:
        return AlreadyExists(f"{target} already exists: {message}", details=details)
    if exc.status in (400, 422):
        return ValidationError(f"{target} was rejected by the API server: {message}", details=details)
    return UpstreamError(f"Kubernetes API error for {target}: {message}", details=details)


def summarize_node(node: Any) -> dict[str, Any]:
    status = "Unready"
    for condition in getattr(node.status, "conditions", None) or []:
        if condition.type == "Ready":
            status = "Ready"
            break
    capacity = getattr(node.status, "capacity", None) or {}
    return {
        "name": node.metadata.name,
        "cpu": capacity.get("cpu"),
        "memory": capacity.get("memory"),
        "status": status,
    }


def summarize_pod(pod: Any) -> dict[str, Any]:
    phase = getattr(pod.status, "phase", None) if pod.status else None
    return {"name": pod.metadata.name, "status": phase or "Unknown"}


def summarize(kind: str, items: list[Any]) -> list[Any]:
    """Project list results into the shape the API returns."""
    if kind == "Node":
        return [summarize_node(item) for item in items]
    if kind == "Pod":
        return [summarize_pod(item) for item in items]
    return [item.metadata.name for item in items]


class ResourceGateway:
    """CRUD over Node, Namespace, Deployment and Pod."""

    def __init__(self, provider: KubeClientProvider) -> None:
        self._provider = provider

    async def _api(self, spec: KindSpec) -> Any:
        # The first resolve reads the kubeconfig and may run exec credential plugins
        handle = await asyncio.to_thread(self._provider.resolve)
        return getattr(handle, spec.api)

    @staticmethod
    def _check_ref(ref: ResourceRef, spec: KindSpec) -> None:
        if not ref.name:
            raise ValidationError(f"{spec.kind} name is required")
        if spec.namespaced and not ref.namespace:
            raise ValidationError(f"namespace is required for {spec.kind}")

    async def _call(self, verb: str, ref: ResourceRef, fn: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except ApiException as exc:
            error = classify_api_error(exc, ref)
            logger.warning(
                f"kubernetes.{verb}_{ref.kind.lower()}_error",
                resource=str(ref),
                status=exc.status,
                error=error.message,
            )
            raise error from exc
        except (HTTPError, OSError) as exc:
            logger.warning(f"kubernetes.{verb}_{ref.kind.lower()}_error", resource=str(ref), error=str(exc))
            raise UpstreamError(f"Kubernetes API unreachable for {ref}: {exc}") from exc

    async def list(self, kind: str, namespace: str | None = None) -> list[Any]:
        spec = get_kind(kind)
        spec.require(Operation.LIST)
        api = await self._api(spec)
        ref = ResourceRef(kind=spec.kind, name="*", namespace=namespace)
        if spec.namespaced and namespace:
            result = await self._call("list", ref, getattr(api, spec.method("list")), namespace=namespace)
        elif spec.namespaced:
            result = await self._call("list", ref, getattr(api, spec.method("list_all")))
        else:
            result = await self._call("list", ref, getattr(api, spec.method("list")))
        return list(result.items or [])

    async def get(self, ref: ResourceRef) -> Any:
        spec = ref.spec
        spec.require(Operation.GET)
        self._check_ref(ref, spec)
        kwargs: dict[str, Any] = {"name": ref.name}
        if spec.namespaced:
            kwargs["namespace"] = ref.namespace
        return await self._call("read", ref, getattr(await self._api(spec), spec.method("read")), **kwargs)

    async def create(self, ref: ResourceRef, manifest: Any) -> Any:
        spec = ref.spec
        spec.require(Operation.CREATE)
        self._check_ref(ref, spec)
        metadata = manifest.metadata
        if metadata is None or metadata.name != ref.name:
            raise ValidationError(
                f"Manifest name '{getattr(metadata, 'name', None)}' does not match '{ref.name}'"
            )
        if metadata.namespace and metadata.namespace != ref.namespace:
            raise ValidationError(
                f"Manifest namespace '{metadata.namespace}' does not match '{ref.namespace}'"
            )
        body = manifest_codec.strip_server_fields(manifest)
        created = await self._call(
            "create",
            ref,
            getattr(await self._api(spec), spec.method("create")),
            namespace=ref.namespace,
            body=body,
        )
        logger.info(f"kubernetes.{spec.kind.lower()}_created", resource=str(ref))
        return created

    async def delete(self, ref: ResourceRef) -> None:
        spec = ref.spec
        spec.require(Operation.DELETE)
        self._check_ref(ref, spec)
        await self._call(
            "delete",
            ref,
            getattr(await self._api(spec), spec.method("delete")),
            name=ref.name,
            namespace=ref.namespace,
            body=client.V1DeleteOptions(),
        )
        logger.info(f"kubernetes.{spec.kind.lower()}_deleted", resource=str(ref))

    async def logs(self, ref: ResourceRef) -> str:
        spec = ref.spec
        spec.require(Operation.LOGS)
        self._check_ref(ref, spec)
        core_v1 = await self._api(spec)
        try:
            return await self._call(
                "read_log", ref, core_v1.read_namespaced_pod_log, name=ref.name, namespace=ref.namespace
            )
        except NotFound as exc:
            # A missing pod, or one with no output yet, is not a distinct error kind here
            raise UpstreamError(exc.message, details=exc.details) from exc

    async def get_manifest(self, ref: ResourceRef) -> str:
        ref.spec.require(Operation.MANIFEST)
        obj = await self.get(ref)
        return manifest_codec.encode(obj)
