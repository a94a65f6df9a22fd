from fastapi import APIRouter, Depends

from kubedeck.dependencies import get_resource_gateway
from kubedeck.schemas.kubernetes import NodeList
from kubedeck.services.resource_gateway import ResourceGateway, summarize

router = APIRouter(tags=["nodes"])


@router.get("/nodes", response_model=NodeList, summary="List nodes with capacity and readiness")
async def list_nodes(gateway: ResourceGateway = Depends(get_resource_gateway)) -> NodeList:
    items = await gateway.list("Node")
    return NodeList(nodes=summarize("Node", items))
