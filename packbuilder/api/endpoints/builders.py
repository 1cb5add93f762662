from __future__ import annotations

from fastapi import APIRouter, Depends

from packbuilder.api.deps import get_builder_service
from packbuilder.core.service import BuilderService
from packbuilder.core.spec.models import CreateBuilderFlags

router = APIRouter(prefix="/api/v1/builders", tags=["builders"])


@router.post("")
def create_builder(req: CreateBuilderFlags, service: BuilderService = Depends(get_builder_service)):
    # BuilderError subclasses are mapped to status codes by the app-level handler
    result = service.create_builder(req)
    return {
        "repo_name": result.repo_name,
        "image_digest": result.image_digest,
        "layers": result.layers,
    }
