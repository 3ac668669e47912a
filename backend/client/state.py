# backend/client/state.py
"""Client application state.

``AppState`` is an immutable snapshot; ``reduce`` is the only way to get the
next one. Collections map entity id to the last known entity dict. Every
optimistic patch remembers the entity as it was before the patch so a failed
call can be reverted exactly.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class PendingPatch:
    collection: str
    entity_id: int
    # None when the entity did not exist before the patch
    previous: Optional[Mapping[str, Any]]


@dataclass(frozen=True)
class AppState:
    collections: Mapping[str, Mapping[int, Mapping[str, Any]]] = field(default_factory=dict)
    pending: Mapping[str, PendingPatch] = field(default_factory=dict)
    offline: bool = False
    last_error: Optional[str] = None

    def items(self, collection: str) -> list:
        return list(self.collections.get(collection, {}).values())

    def get(self, collection: str, entity_id: int) -> Optional[Mapping[str, Any]]:
        return self.collections.get(collection, {}).get(entity_id)


# ---- actions ----

@dataclass(frozen=True)
class Loaded:
    collection: str
    items: Tuple[Mapping[str, Any], ...]


@dataclass(frozen=True)
class OptimisticPatch:
    op_id: str
    collection: str
    entity_id: int
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class Confirm:
    op_id: str
    # Server copy of the entity; replaces the optimistic one when given
    entity: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class Revert:
    op_id: str
    error: Optional[str] = None


@dataclass(frozen=True)
class WentOffline:
    reason: str


Action = Union[Loaded, OptimisticPatch, Confirm, Revert, WentOffline]


def _with_entity(state: AppState, collection: str, entity_id: int, entity) -> Dict:
    current = dict(state.collections.get(collection, {}))
    if entity is None:
        current.pop(entity_id, None)
    else:
        current[entity_id] = dict(entity)
    collections = dict(state.collections)
    collections[collection] = current
    return collections


def _without_pending(state: AppState, op_id: str) -> Dict:
    pending = dict(state.pending)
    pending.pop(op_id, None)
    return pending


def reduce(state: AppState, action: Action) -> AppState:
    if isinstance(action, Loaded):
        collections = dict(state.collections)
        collections[action.collection] = {item["id"]: dict(item) for item in action.items}
        return replace(state, collections=collections, offline=False, last_error=None)

    if isinstance(action, OptimisticPatch):
        previous = state.get(action.collection, action.entity_id)
        patched = dict(previous or {"id": action.entity_id})
        patched.update(action.changes)
        pending = dict(state.pending)
        pending[action.op_id] = PendingPatch(action.collection, action.entity_id, previous)
        return replace(
            state,
            collections=_with_entity(state, action.collection, action.entity_id, patched),
            pending=pending,
        )

    if isinstance(action, Confirm):
        patch = state.pending.get(action.op_id)
        if patch is None:
            return state
        collections = state.collections
        if action.entity is not None:
            collections = _with_entity(state, patch.collection, patch.entity_id, action.entity)
        return replace(state, collections=collections, pending=_without_pending(state, action.op_id))

    if isinstance(action, Revert):
        patch = state.pending.get(action.op_id)
        if patch is None:
            return state
        return replace(
            state,
            collections=_with_entity(state, patch.collection, patch.entity_id, patch.previous),
            pending=_without_pending(state, action.op_id),
            last_error=action.error,
        )

    if isinstance(action, WentOffline):
        return replace(state, offline=True, last_error=action.reason)

    raise TypeError(f"Unknown action {action!r}")
