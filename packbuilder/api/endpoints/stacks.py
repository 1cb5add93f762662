from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from packbuilder.api.deps import get_stacks
from packbuilder.core.errors import ConfigError
from packbuilder.core.stacks import StackConfig

router = APIRouter(prefix="/api/v1/stacks", tags=["stacks"])


@router.get("/")
def list_stacks(stacks: StackConfig = Depends(get_stacks)):
    return {
        "default_stack_id": stacks.default_stack_id,
        "stacks": stacks.list_ids(),
    }


@router.get("/{stack_id}")
def get_stack(stack_id: str, stacks: StackConfig = Depends(get_stacks)):
    try:
        stack = stacks.get(stack_id)
    except ConfigError:
        raise HTTPException(status_code=404, detail="Stack not found")
    return stack.model_dump()
