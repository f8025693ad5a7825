"""Growth timer endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ..services.engine_host import get_host


router = APIRouter(prefix="/api/v1/growth", tags=["growth"])

_FOCUS_PATTERN = "^(latest|earliest|specific)$"


class ConfigureRequest(BaseModel):
    enabled: Optional[bool] = None
    include_boardwalk: Optional[bool] = None
    min_active_hunger_pct: Optional[float] = None
    fallback_target_scale: Optional[float] = None
    focus: Optional[str] = Field(default=None, pattern=_FOCUS_PATTERN)
    focus_target_tile_id: Optional[str] = None
    focus_target_slot_index: Optional[float] = None
    egg_focus: Optional[str] = Field(default=None, pattern=_FOCUS_PATTERN)
    egg_focus_target_tile_id: Optional[str] = None
    egg_focus_target_slot_index: Optional[float] = None


class EnabledRequest(BaseModel):
    enabled: bool


class WorldSnapshotRequest(BaseModel):
    snapshot: dict[str, Any] = Field(default_factory=dict)


class AgentListRequest(BaseModel):
    agents: list[dict[str, Any]] = Field(default_factory=list)


class OverrideRequest(BaseModel):
    xp: Optional[float] = Field(default=None, ge=0)
    target_scale: Optional[float] = Field(default=None, ge=0)
    strength: Optional[float] = Field(default=None, ge=0)


def _agent_ref(pet_id: Optional[str], slot_index: int, species: Optional[str]) -> dict[str, Any]:
    ref: dict[str, Any] = {"slotIndex": slot_index}
    if pet_id:
        ref["petId"] = pet_id
    if species:
        ref["species"] = species
    return ref


def _state_payload(state: Any) -> dict:
    return {"ok": True, "state": state.as_dict()}


@router.get("/state")
def get_state() -> dict:
    host = get_host()
    with host.lock:
        return _state_payload(host.engine.get_state())


@router.put("/config")
def put_config(req: ConfigureRequest) -> dict:
    partial = req.model_dump(exclude_unset=True)
    host = get_host()
    with host.lock:
        state = host.engine.configure(partial)
        return {"ok": True, "config": host.engine.config.as_dict(), "state": state.as_dict()}


@router.post("/enabled")
def post_enabled(req: EnabledRequest) -> dict:
    host = get_host()
    with host.lock:
        return _state_payload(host.engine.set_enabled(req.enabled))


@router.post("/recompute")
def post_recompute() -> dict:
    host = get_host()
    with host.lock:
        return _state_payload(host.engine.force_recompute())


@router.post("/world")
def post_world(req: WorldSnapshotRequest) -> dict:
    return _state_payload(get_host().push_world(req.snapshot))


@router.post("/agents")
def post_agents(req: AgentListRequest) -> dict:
    return _state_payload(get_host().push_agents(req.agents))


@router.get("/overrides")
def get_override(
    pet_id: Optional[str] = Query(default=None),
    slot_index: int = Query(default=0, ge=0),
    species: Optional[str] = Query(default=None),
) -> dict:
    host = get_host()
    with host.lock:
        override = host.engine.get_manual_override(_agent_ref(pet_id, slot_index, species))
    return {"override": override.as_dict() if override else None}


@router.put("/overrides")
def put_override(
    req: OverrideRequest,
    pet_id: Optional[str] = Query(default=None),
    slot_index: int = Query(default=0, ge=0),
    species: Optional[str] = Query(default=None),
) -> dict:
    partial = req.model_dump(exclude_unset=True)
    if not partial:
        raise HTTPException(status_code=400, detail="No override fields provided")
    host = get_host()
    with host.lock:
        saved = host.engine.set_manual_override(_agent_ref(pet_id, slot_index, species), partial)
        state = host.engine.get_state()
    return {"ok": True, "override": saved.as_dict(), "state": state.as_dict()}


@router.delete("/overrides")
def delete_override(
    pet_id: Optional[str] = Query(default=None),
    slot_index: int = Query(default=0, ge=0),
    species: Optional[str] = Query(default=None),
    field: Optional[str] = Query(default=None, pattern="^(xp|target_scale|targetScale|strength)$"),
) -> dict:
    host = get_host()
    with host.lock:
        host.engine.clear_manual_override(_agent_ref(pet_id, slot_index, species), field)
        override = host.engine.get_manual_override(_agent_ref(pet_id, slot_index, species))
    return {"ok": True, "override": override.as_dict() if override else None}


@router.get("/completion-log")
def get_completion_log() -> dict:
    host = get_host()
    with host.lock:
        entries = [entry.as_dict() for entry in host.engine.get_completion_log()]
    return {"count": len(entries), "entries": entries}


@router.delete("/completion-log")
def delete_completion_log() -> dict:
    host = get_host()
    with host.lock:
        host.engine.clear_completion_log()
    return {"ok": True}


@router.get("/diagnostics/slots")
def get_slot_diagnostics(
    tile_id: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
) -> dict:
    host = get_host()
    with host.lock:
        rows = host.engine.diagnose_slots(tile_id=tile_id, limit=limit)
    return {
        "count": len(rows),
        "eggs": sum(1 for row in rows if row["isEgg"]),
        "slots": rows,
    }
