from __future__ import annotations

from typing import Set, Tuple

from .models import AssemblyState


_ALLOWED: Set[Tuple[AssemblyState, AssemblyState]] = {
    (AssemblyState.INIT, AssemblyState.BASE_RESOLVED),
    (AssemblyState.BASE_RESOLVED, AssemblyState.ORDER_LAYER_APPLIED),
    (AssemblyState.ORDER_LAYER_APPLIED, AssemblyState.BUILDPACK_LAYER_APPLIED),
    (AssemblyState.BUILDPACK_LAYER_APPLIED, AssemblyState.BUILDPACK_LAYER_APPLIED),

    # a builder with no buildpacks goes straight from the order layer to persist
    (AssemblyState.ORDER_LAYER_APPLIED, AssemblyState.PERSISTED),
    (AssemblyState.BUILDPACK_LAYER_APPLIED, AssemblyState.PERSISTED),

    (AssemblyState.PERSISTED, AssemblyState.DONE),
}

_TERMINAL: Set[AssemblyState] = {
    AssemblyState.DONE,
    AssemblyState.FAILED,
}


def is_terminal(state: AssemblyState) -> bool:
    return state in _TERMINAL


def can_transition(src: AssemblyState, dst: AssemblyState) -> bool:
    if src in _TERMINAL:
        return False
    if dst == AssemblyState.FAILED:
        return True
    return (src, dst) in _ALLOWED


def ensure_transition(src: AssemblyState, dst: AssemblyState) -> None:
    if not can_transition(src, dst):
        raise ValueError(f"Illegal transition: {src.value} -> {dst.value}")
