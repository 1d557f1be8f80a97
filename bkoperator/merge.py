"""Merging of plain mappings and of API objects in their JSON form."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

# Lists that are merged element by element rather than replaced, keyed by the
# field that identifies an element. A key of None merges a list of scalars as
# an ordered set.
MERGE_KEYS: dict[str, str | None] = {
    "containers": "name",
    "initContainers": "name",
    "ephemeralContainers": "name",
    "volumes": "name",
    "volumeMounts": "mountPath",
    "volumeDevices": "devicePath",
    "ports": "containerPort",
    "env": "name",
    "imagePullSecrets": "name",
    "hostAliases": "ip",
    "ownerReferences": "uid",
    "resourceClaims": "name",
    "schedulingGates": "name",
    "topologySpreadConstraints": "topologyKey",
    "finalizers": None,
}


def merge_maps(*args: Mapping[Any, Any] | None) -> dict[Any, Any]:
    """Merge mappings left to right into a new dict; later keys win."""
    return {key: value for mapping in args if mapping for key, value in mapping.items()}


def _clean(value: Any) -> Any:
    """Deep copy a JSON value, dropping null entries from mappings."""
    if isinstance(value, Mapping):
        return {k: _clean(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_clean(item) for item in value]
    return copy.deepcopy(value)


def _merge_list(current: list[Any], patch: list[Any], merge_key: str | None) -> list[Any]:
    merged = [copy.deepcopy(item) for item in current]

    if merge_key is None:
        for item in patch:
            if item not in merged:
                merged.append(_clean(item))
        return merged

    for item in patch:
        if not isinstance(item, Mapping):
            merged.append(_clean(item))
            continue
        identity = item.get(merge_key)
        target = next(
            (
                existing
                for existing in merged
                if isinstance(existing, dict) and existing.get(merge_key) == identity
            ),
            None,
        )
        if target is None:
            merged.append(_clean(item))
        else:
            _merge_into(target, item)
    return merged


def _merge_into(base: dict[str, Any], override: Mapping[str, Any]) -> None:
    for key, value in override.items():
        if value is None:
            continue
        current = base.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _merge_into(current, value)
        elif isinstance(value, list) and isinstance(current, list) and key in MERGE_KEYS:
            base[key] = _merge_list(current, value, MERGE_KEYS[key])
        else:
            base[key] = _clean(value)


def merge_objects(base: dict[str, Any], *args: Mapping[str, Any]) -> dict[str, Any]:
    """Merge each override into ``base`` in turn, in place, and return ``base``.

    Fields in ``base`` that an override lacks are kept. Mappings merge
    recursively; lists named in MERGE_KEYS merge by their key, keeping the
    order of ``base`` and appending new elements; other values are replaced.
    The overrides are never modified.
    """
    if not isinstance(base, dict):
        raise TypeError(f"base must be a dict, got {type(base).__name__}")
    for override in args:
        if not isinstance(override, Mapping):
            raise TypeError(f"override must be a mapping, got {type(override).__name__}")
        _merge_into(base, override)
    return base