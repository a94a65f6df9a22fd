from fastapi import APIRouter, Depends, Request, status

from kubedeck.dependencies import get_resource_gateway
from kubedeck.schemas.kubernetes import DeploymentList, DeploymentResult
from kubedeck.services import manifest_codec
from kubedeck.services.resource_gateway import ResourceGateway, ResourceRef, summarize

router = APIRouter(tags=["deployments"])


@router.get("/deployments/{namespace}", response_model=DeploymentList, summary="List deployment names")
async def list_deployments(
    namespace: str, gateway: ResourceGateway = Depends(get_resource_gateway)
) -> DeploymentList:
    items = await gateway.list("Deployment", namespace=namespace)
    return DeploymentList(deployments=summarize("Deployment", items))


@router.post(
    "/deployment/{namespace}/{name}",
    response_model=DeploymentResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create a deployment from a YAML or JSON manifest",
)
async def create_deployment(
    namespace: str,
    name: str,
    request: Request,
    gateway: ResourceGateway = Depends(get_resource_gateway),
) -> DeploymentResult:
    manifest = manifest_codec.decode("Deployment", await request.body())
    await gateway.create(ResourceRef(kind="Deployment", name=name, namespace=namespace), manifest)
    return DeploymentResult(deploymentName=name)


@router.delete("/deployment/{namespace}/{name}", response_model=DeploymentResult, summary="Delete a deployment")
async def delete_deployment(
    namespace: str, name: str, gateway: ResourceGateway = Depends(get_resource_gateway)
) -> DeploymentResult:
    await gateway.delete(ResourceRef(kind="Deployment", name=name, namespace=namespace))
    return DeploymentResult(deploymentName=name)
