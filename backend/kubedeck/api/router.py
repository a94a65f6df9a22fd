from fastapi import APIRouter

from kubedeck.api.routes import assistant, cluster, deployments, namespaces, nodes, pods

resources_router = APIRouter(prefix="/resources")
resources_router.include_router(cluster.router)
resources_router.include_router(nodes.router)
resources_router.include_router(namespaces.router)
resources_router.include_router(deployments.router)
resources_router.include_router(pods.router)

api_router = APIRouter()
api_router.include_router(resources_router)
api_router.include_router(assistant.router)
