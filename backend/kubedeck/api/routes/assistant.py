from typing import Any

from fastapi import APIRouter, Depends

from kubedeck.dependencies import get_manifest_assistant
from kubedeck.schemas.kubernetes import ManifestDraftRequest
from kubedeck.services.manifest_assistant import ManifestAssistant

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.post("/manifest", summary="Draft an example manifest")
async def draft_manifest(
    body: ManifestDraftRequest,
    assistant: ManifestAssistant = Depends(get_manifest_assistant),
) -> dict[str, Any]:
    return await assistant.draft(body.yamlType, body.query)
