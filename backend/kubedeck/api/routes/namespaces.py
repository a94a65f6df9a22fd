from fastapi import APIRouter, Depends

from kubedeck.dependencies import get_resource_gateway
from kubedeck.schemas.kubernetes import NamespaceList
from kubedeck.services.resource_gateway import ResourceGateway, summarize

router = APIRouter(tags=["namespaces"])


@router.get("/namespaces", response_model=NamespaceList, summary="List namespace names")
async def list_namespaces(gateway: ResourceGateway = Depends(get_resource_gateway)) -> NamespaceList:
    items = await gateway.list("Namespace")
    return NamespaceList(namespaces=summarize("Namespace", items))
