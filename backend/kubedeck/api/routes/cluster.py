import asyncio

from fastapi import APIRouter, Depends

from kubedeck.dependencies import get_client_provider
from kubedeck.schemas.kubernetes import ClusterName
from kubedeck.services.cluster_client import KubeClientProvider

router = APIRouter(tags=["cluster"])


@router.get("/cluster-name", response_model=ClusterName, summary="Cluster bound to the current context")
async def get_cluster_name(provider: KubeClientProvider = Depends(get_client_provider)) -> ClusterName:
    handle = await asyncio.to_thread(provider.resolve)
    return ClusterName(clusterName=handle.cluster_name)
