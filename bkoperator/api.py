"""Resource types of the buildkit.seatgeek.io API group and an in-memory object store."""

from __future__ import annotations

import copy
import dataclasses
import random
from dataclasses import dataclass, field
from typing import Any

GROUP = "buildkit.seatgeek.io"
VERSION = "v1alpha1"
GROUP_VERSION = f"{GROUP}/{VERSION}"

BUILDKIT_TEMPLATE_NAME_MAX_LENGTH = 57

TYPE_DEPLOYED = "Deployed"
TYPE_READY = "Ready"

REASON_AVAILABLE = "Available"
REASON_UNAVAILABLE = "Unavailable"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

_NAME_SUFFIX_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
_NAME_SUFFIX_LENGTH = 5


@dataclass
class Condition:
    """The observed state of one aspect of a resource."""

    type: str
    status: str = CONDITION_UNKNOWN
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class ObjectKey:
    """Identifies an object by namespace and name."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


@dataclass(frozen=True)
class TypedObjectRef:
    """A reference to an object of a given group, version and kind."""

    group: str = ""
    version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    def object_key(self) -> ObjectKey:
        return ObjectKey(namespace=self.namespace, name=self.name)


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""

    def __init__(self, kind: str, key: ObjectKey) -> None:
        super().__init__(f'{kind} "{key.name}" not found')
        self.kind = kind
        self.key = key


@dataclass
class _ConditionedStatus:
    conditions: list[Condition] = field(default_factory=list)
    # Every resource managed by the owning object.
    resource_refs: list[TypedObjectRef] = field(default_factory=list)

    def _get_condition(self, condition_type: str) -> Condition:
        for condition in self.conditions:
            if condition.type == condition_type:
                return dataclasses.replace(condition)
        return Condition(type=condition_type, status=CONDITION_UNKNOWN)

    def _set_conditions(self, conditions: tuple[Condition, ...]) -> None:
        for new in conditions:
            for position, existing in enumerate(self.conditions):
                if existing.type == new.type:
                    self.conditions[position] = dataclasses.replace(new)
                    break
            else:
                self.conditions.append(dataclasses.replace(new))


@dataclass
class BuildkitSpec:
    """Desired state of a Buildkit instance."""

    # Name of the BuildkitTemplate the instance is created from.
    template: str = ""
    # Optional resource requirements: {"limits": {...}, "requests": {...}}.
    resources: dict[str, Any] | None = None
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class BuildkitStatus(_ConditionedStatus):
    """Observed state of a Buildkit instance."""

    # TCP URI of the instance, such as tcp://10.0.0.1:1234.
    endpoint: str = ""


@dataclass
class Buildkit:
    """A single Buildkit daemon created from a BuildkitTemplate."""

    name: str = ""
    namespace: str = ""
    spec: BuildkitSpec = field(default_factory=BuildkitSpec)
    status: BuildkitStatus = field(default_factory=BuildkitStatus)

    def get_condition(self, condition_type: str) -> Condition:
        """Return the condition of that type, or an Unknown one if it is not set."""
        return self.status._get_condition(condition_type)

    def set_conditions(self, *args: Condition) -> None:
        """Set conditions, replacing any existing ones of the same type."""
        self.status._set_conditions(args)


@dataclass
class BuildkitTemplateSpec:
    """Desired state of a BuildkitTemplate."""

    # Pod template in its JSON form: {"metadata": {...}, "spec": {...}}.
    pod_template: dict[str, Any] = field(default_factory=dict)
    # buildkitd configuration in TOML format.
    buildkitd_toml: str = ""
    # TCP port the instances listen on.
    port: int = 0
    # Whether instances must be created with an owner reference.
    require_owner: bool = False


@dataclass
class BuildkitTemplateStatus(_ConditionedStatus):
    """Observed state of a BuildkitTemplate."""


@dataclass
class BuildkitTemplate:
    """A template from which Buildkit instances are created."""

    name: str = ""
    namespace: str = ""
    spec: BuildkitTemplateSpec = field(default_factory=BuildkitTemplateSpec)
    status: BuildkitTemplateStatus = field(default_factory=BuildkitTemplateStatus)

    def get_condition(self, condition_type: str) -> Condition:
        """Return the condition of that type, or an Unknown one if it is not set."""
        return self.status._get_condition(condition_type)

    def set_conditions(self, *args: Condition) -> None:
        """Set conditions, replacing any existing ones of the same type."""
        self.status._set_conditions(args)


class Scheme:
    """Maps kind names to the Python types that represent them."""

    def __init__(self) -> None:
        self._types: dict[str, type] = {}

    def register(self, kind: str, cls: type) -> None:
        registered = self._types.get(kind)
        if registered is not None and registered is not cls:
            raise ValueError(
                f"kind {kind!r} is already registered to {registered.__name__}"
            )
        self._types[kind] = cls

    def type_for(self, kind: str) -> type:
        try:
            return self._types[kind]
        except KeyError:
            raise KeyError(f"no kind {kind!r} is registered in scheme") from None

    def __contains__(self, kind: object) -> bool:
        return kind in self._types


def new_scheme() -> Scheme:
    """Create a scheme holding the native kinds used here and the custom kinds."""
    scheme = Scheme()
    for native_kind in ("Pod", "ConfigMap", "Namespace"):
        scheme.register(native_kind, dict)
    scheme.register("Buildkit", Buildkit)
    scheme.register("BuildkitTemplate", BuildkitTemplate)
    return scheme


def _generate_name(prefix: str) -> str:
    suffix = "".join(random.choices(_NAME_SUFFIX_ALPHABET, k=_NAME_SUFFIX_LENGTH))
    return prefix + suffix


class ObjectStore:
    """An in-memory collection of objects, addressed by kind and key.

    Native objects are plain dicts in their JSON form; custom objects are the
    dataclasses of this module. Objects are copied in and out, so callers never
    share state with the store.
    """

    def __init__(self, scheme: Scheme | None = None) -> None:
        self._scheme = scheme
        self._objects: dict[tuple[str, ObjectKey], Any] = {}

    def _key_for(self, kind: str, obj: Any) -> ObjectKey:
        if isinstance(obj, dict):
            metadata = obj.setdefault("metadata", {})
            namespace = metadata.get("namespace") or ""
            name = metadata.get("name") or ""
            if not name:
                prefix = metadata.get("generateName") or ""
                if not prefix:
                    raise ValueError(f"{kind} object has neither name nor generateName")
                name = _generate_name(prefix)
                while (kind, ObjectKey(namespace, name)) in self._objects:
                    name = _generate_name(prefix)
                metadata["name"] = name
            return ObjectKey(namespace=namespace, name=name)

        if not getattr(obj, "name", ""):
            raise ValueError(f"{kind} object has no name")
        return ObjectKey(namespace=obj.namespace, name=obj.name)

    def add(self, kind: str, obj: Any) -> ObjectKey:
        """Store an object, replacing any with the same key, and return its key."""
        if self._scheme is not None:
            expected = self._scheme.type_for(kind)
            if not isinstance(obj, expected):
                raise TypeError(
                    f"expected {expected.__name__} for kind {kind!r}, got {type(obj).__name__}"
                )
        key = self._key_for(kind, obj)
        self._objects[(kind, key)] = copy.deepcopy(obj)
        return key

    def get(self, kind: str, key: ObjectKey) -> Any:
        """Return a copy of the stored object, raising NotFoundError if absent."""
        try:
            return copy.deepcopy(self._objects[(kind, key)])
        except KeyError:
            raise NotFoundError(kind, key) from None

    def delete(self, kind: str, key: ObjectKey) -> None:
        """Remove an object, raising NotFoundError if absent."""
        try:
            del self._objects[(kind, key)]
        except KeyError:
            raise NotFoundError(kind, key) from None

    def __contains__(self, item: object) -> bool:
        return item in self._objects

    def __len__(self) -> int:
        return len(self._objects)