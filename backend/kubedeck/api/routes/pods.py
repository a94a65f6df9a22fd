import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response, StreamingResponse

from kubedeck.core.request_context import request_id_var
from kubedeck.dependencies import get_pod_replacer, get_resource_gateway
from kubedeck.exceptions import AppException, error_payload
from kubedeck.schemas.kubernetes import PodDeleteResult, PodList, PodLogs, PodReplaceResult, PodResult
from kubedeck.services import manifest_codec
from kubedeck.services.pod_replacer import PodReplacer
from kubedeck.services.resource_gateway import ResourceGateway, ResourceRef, summarize

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["pods"])

# Replacements keep running after a streaming client disconnects
_inflight: set[asyncio.Task] = set()


def _finish_detached(task: asyncio.Task) -> None:
    _inflight.discard(task)
    # Collect the outcome so a replace that outlived its client is not reported as unretrieved
    if not task.cancelled():
        task.exception()


def _pod(namespace: str, name: str) -> ResourceRef:
    return ResourceRef(kind="Pod", name=name, namespace=namespace)


@router.get("/pods/{namespace}", response_model=PodList, summary="List pods with their phase")
async def list_pods(namespace: str, gateway: ResourceGateway = Depends(get_resource_gateway)) -> PodList:
    items = await gateway.list("Pod", namespace=namespace)
    return PodList(pods=summarize("Pod", items))


@router.post(
    "/pod/{namespace}/{name}",
    response_model=PodResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a pod from a YAML or JSON manifest",
)
async def create_pod(
    namespace: str,
    name: str,
    request: Request,
    gateway: ResourceGateway = Depends(get_resource_gateway),
) -> PodResult:
    manifest = manifest_codec.decode("Pod", await request.body())
    await gateway.create(_pod(namespace, name), manifest)
    return PodResult(podName=name)


async def _replace_events(
    replacer: PodReplacer, namespace: str, name: str, manifest: Any
) -> AsyncIterator[str]:
    queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    async def observer(event: dict[str, Any]) -> None:
        await queue.put(event)

    async def run() -> None:
        try:
            await replacer.replace(namespace, name, manifest, observer=observer)
        finally:
            await queue.put(None)

    task = asyncio.create_task(run())
    _inflight.add(task)
    task.add_done_callback(_finish_detached)

    while (event := await queue.get()) is not None:
        yield json.dumps(event) + "\n"

    try:
        await task
    except AppException as exc:
        yield json.dumps(error_payload(exc, request_id_var.get())) + "\n"
    except Exception:
        logger.exception("replace.stream_error", pod=f"{namespace}/{name}")
        failure = AppException("Internal server error", code="INTERNAL_SERVER_ERROR")
        yield json.dumps(error_payload(failure, request_id_var.get())) + "\n"


@router.put(
    "/pod/{namespace}/{name}",
    response_model=PodReplaceResult,
    summary="Replace a pod with a new manifest (delete, then recreate)",
)
async def replace_pod(
    namespace: str,
    name: str,
    request: Request,
    stream: bool = Query(default=False, description="Stream phase events as NDJSON"),
    replacer: PodReplacer = Depends(get_pod_replacer),
):
    manifest = manifest_codec.decode("Pod", await request.body())
    if stream:
        # Reject a mismatched manifest before any bytes are sent
        replacer.check_target(namespace, name, manifest)
        return StreamingResponse(
            _replace_events(replacer, namespace, name, manifest),
            media_type="application/x-ndjson",
        )
    op = await replacer.replace(namespace, name, manifest)
    return PodReplaceResult(**op.result())


@router.delete("/pod/{namespace}/{name}", response_model=PodDeleteResult, summary="Delete a pod")
async def delete_pod(
    namespace: str, name: str, gateway: ResourceGateway = Depends(get_resource_gateway)
) -> PodDeleteResult:
    await gateway.delete(_pod(namespace, name))
    return PodDeleteResult(deletedPod=name)


@router.get("/pod/{namespace}/{name}/yaml", summary="Get the pod manifest as YAML")
async def get_pod_yaml(
    namespace: str, name: str, gateway: ResourceGateway = Depends(get_resource_gateway)
) -> Response:
    text = await gateway.get_manifest(_pod(namespace, name))
    return Response(content=text, media_type="application/x-yaml")


@router.get("/pod/{namespace}/{name}/logs", response_model=PodLogs, summary="Get the pod's log output")
async def get_pod_logs(
    namespace: str, name: str, gateway: ResourceGateway = Depends(get_resource_gateway)
) -> PodLogs:
    return PodLogs(logs=await gateway.logs(_pod(namespace, name)))
