from functools import lru_cache

from kubedeck.config import get_settings
from kubedeck.services.cluster_client import KubeClientProvider
from kubedeck.services.manifest_assistant import ManifestAssistant
from kubedeck.services.pod_replacer import PodReplacer
from kubedeck.services.resource_gateway import ResourceGateway


@lru_cache(maxsize=1)
def get_client_provider() -> KubeClientProvider:
    return KubeClientProvider(get_settings())


@lru_cache(maxsize=1)
def get_resource_gateway() -> ResourceGateway:
    return ResourceGateway(get_client_provider())


def get_pod_replacer() -> PodReplacer:
    return PodReplacer(get_resource_gateway(), get_settings())


def get_manifest_assistant() -> ManifestAssistant:
    return ManifestAssistant(get_settings())


def reset_cached_dependencies() -> None:
    """Drop cached settings and clients (used by tests and on config changes)."""
    if get_client_provider.cache_info().currsize:
        get_client_provider().invalidate()
    get_client_provider.cache_clear()
    get_resource_gateway.cache_clear()
    get_settings.cache_clear()
