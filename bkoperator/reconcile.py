"""Outcome of a reconcile pass and the changes it asks to be made."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from .api import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    GROUP,
    REASON_AVAILABLE,
    TYPE_READY,
    VERSION,
    Condition,
    NotFoundError,
    ObjectKey,
    ObjectStore,
    TypedObjectRef,
)

_CUSTOM_KINDS = frozenset({"Buildkit", "BuildkitTemplate"})


@dataclass
class ControlPlaneContext:
    """Settings shared by the controllers and read during their reconcile passes."""

    # Metrics sink for the controller process.
    metrics: Any = None


def _ref_for(kind: str, key: ObjectKey) -> TypedObjectRef:
    if kind in _CUSTOM_KINDS:
        return TypedObjectRef(
            group=GROUP, version=VERSION, kind=kind, name=key.name, namespace=key.namespace
        )
    return TypedObjectRef(version="v1", kind=kind, name=key.name, namespace=key.namespace)


def _key_of(obj: Any) -> ObjectKey:
    if isinstance(obj, dict):
        metadata = obj.get("metadata") or {}
        return ObjectKey(
            namespace=metadata.get("namespace") or "", name=metadata.get("name") or ""
        )
    return ObjectKey(namespace=obj.namespace, name=obj.name)


@dataclass
class OutputSet:
    """Objects a reconcile pass wants applied or deleted once it finishes."""

    applied: list[tuple[str, Any]] = field(default_factory=list)
    deleted: list[TypedObjectRef] = field(default_factory=list)

    def apply(self, kind: str, obj: Any) -> None:
        """Queue an object to be created or replaced."""
        self.applied.append((kind, obj))

    def delete(self, kind: str, obj: Any) -> None:
        """Queue an existing object for deletion."""
        self.delete_by_ref(_ref_for(kind, _key_of(obj)))

    def delete_by_ref(self, ref: TypedObjectRef) -> None:
        """Queue the object a reference points at for deletion."""
        if ref not in self.deleted:
            self.deleted.append(ref)


@dataclass
class Result:
    """How a reconcile pass ended."""

    done: bool = False
    requeue_after_completion: bool = False
    requeue_msg: str = ""
    reason: str = ""
    # Overrides the state's condition when set; its type is ignored.
    custom_status_condition: Condition | None = None


def done_result() -> Result:
    """A pass that completed successfully."""
    return Result(done=True)


def requeue_result(message: str, reason: str) -> Result:
    """A pass that must be retried later."""
    return Result(done=False, requeue_msg=message, reason=reason)


def _commit(store: ObjectStore, out: OutputSet, status: Any) -> None:
    """Apply queued changes to the store and update the managed resource refs."""
    refs = list(status.resource_refs)
    for kind, obj in out.applied:
        ref = _ref_for(kind, store.add(kind, obj))
        if ref not in refs:
            refs.append(ref)
    for ref in out.deleted:
        try:
            store.delete(ref.kind, ref.object_key())
        except NotFoundError:
            pass
        if ref in refs:
            refs.remove(ref)
    status.resource_refs = [ref for ref in refs if (ref.kind, ref.object_key()) in store]


def _record(obj: Any, condition: Condition, result: Result) -> None:
    """Set the state's condition and the Ready condition from a result."""
    custom = result.custom_status_condition
    if custom is not None:
        current = Condition(
            type=condition.type,
            status=custom.status,
            reason=custom.reason,
            message=custom.message,
        )
    elif result.done:
        current = dataclasses.replace(condition)
    else:
        current = Condition(
            type=condition.type,
            status=CONDITION_FALSE,
            reason=result.reason,
            message=result.requeue_msg,
        )

    if current.type == TYPE_READY:
        obj.set_conditions(current)
        return

    if current.status == CONDITION_TRUE:
        ready = Condition(type=TYPE_READY, status=CONDITION_TRUE, reason=REASON_AVAILABLE)
    else:
        ready = Condition(
            type=TYPE_READY,
            status=CONDITION_FALSE,
            reason=current.reason,
            message=current.message,
        )
    obj.set_conditions(current, ready)