"""Admission validation and defaulting of Buildkit and BuildkitTemplate objects."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass
from typing import Any

from .api import (
    BUILDKIT_TEMPLATE_NAME_MAX_LENGTH,
    GROUP,
    Buildkit,
    BuildkitTemplate,
    NotFoundError,
    ObjectKey,
    ObjectStore,
)

DEFAULT_PORT = 1234
DEFAULT_IMAGE = "moby/buildkit:latest"

ERROR_NOT_FOUND = "Not found"
ERROR_REQUIRED = "Required value"
ERROR_INVALID = "Invalid value"
ERROR_TOO_LONG = "Too long"

_VALUELESS_TYPES = {ERROR_REQUIRED, ERROR_TOO_LONG}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value)
    return str(value)


@dataclass(frozen=True)
class FieldError:
    """A problem with one field of an object."""

    type: str
    field: str
    bad_value: Any = None
    detail: str = ""

    def __str__(self) -> str:
        if self.type in _VALUELESS_TYPES:
            body = self.type
        else:
            body = f"{self.type}: {_format_value(self.bad_value)}"
        if self.detail:
            body += f": {self.detail}"
        return f"{self.field}: {body}"


class _StatusError(Exception):
    code = 500


class BadRequestError(_StatusError):
    """The request carried an object of the wrong kind."""

    code = 400


class InternalError(_StatusError):
    """Validation could not be completed."""

    code = 500

    def __init__(self, cause: str) -> None:
        super().__init__(f"Internal error occurred: {cause}")
        self.cause = cause


class InvalidError(_StatusError):
    """The object failed validation."""

    code = 422

    def __init__(self, kind: str, name: str, errors: list[FieldError]) -> None:
        self.kind = kind
        self.name = name
        self.errors = list(errors)
        if len(self.errors) == 1:
            summary = str(self.errors[0])
        else:
            summary = "[" + ", ".join(str(error) for error in self.errors) + "]"
        super().__init__(f'{kind}.{GROUP} "{name}" is invalid: {summary}')


def _expect(obj: Any, cls: type, kind: str) -> Any:
    if not isinstance(obj, cls):
        raise BadRequestError(f"expected {kind} object but got {type(obj).__name__}")
    return obj


class BuildkitValidator:
    """Checks that a Buildkit names a BuildkitTemplate that exists."""

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    def _validate(self, obj: Any) -> list[str]:
        buildkit = _expect(obj, Buildkit, "Buildkit")

        errors: list[FieldError] = []
        template = buildkit.spec.template
        if not template:
            errors.append(
                FieldError(ERROR_REQUIRED, "spec.template", "", "BuildkitTemplate name must be specified")
            )
        else:
            try:
                self._store.get(
                    "BuildkitTemplate", ObjectKey(namespace=buildkit.namespace, name=template)
                )
            except NotFoundError:
                errors.append(
                    FieldError(
                        ERROR_NOT_FOUND,
                        "spec.template",
                        template,
                        f"BuildkitTemplate '{template}' not found in namespace '{buildkit.namespace}'",
                    )
                )
            except Exception as exc:
                raise InternalError(
                    f"failed to get BuildkitTemplate '{template}' in namespace "
                    f"'{buildkit.namespace}': {exc}"
                ) from exc

        if errors:
            raise InvalidError("Buildkit", buildkit.name, errors)
        return []

    def validate_create(self, obj: Any) -> list[str]:
        """Validate a new object; returns warnings, raises on rejection."""
        return self._validate(obj)

    def validate_update(self, old_obj: Any, new_obj: Any) -> list[str]:
        """Validate the updated object; returns warnings, raises on rejection."""
        return self._validate(new_obj)

    def validate_delete(self, obj: Any) -> list[str]:
        """Deletion of any Buildkit is allowed; other kinds are rejected."""
        _expect(obj, Buildkit, "Buildkit")
        return []


class BuildkitTemplateValidator:
    """Checks a BuildkitTemplate's name, port, pod template and TOML."""

    def _validate(self, obj: Any) -> list[str]:
        template = _expect(obj, BuildkitTemplate, "BuildkitTemplate")

        errors: list[FieldError] = []
        if len(template.name) > BUILDKIT_TEMPLATE_NAME_MAX_LENGTH:
            errors.append(
                FieldError(
                    ERROR_TOO_LONG,
                    "metadata.name",
                    template.name,
                    f"may not be more than {BUILDKIT_TEMPLATE_NAME_MAX_LENGTH} bytes",
                )
            )

        port = template.spec.port
        if port < 1 or port > 65535:
            errors.append(
                FieldError(ERROR_INVALID, "spec.port", port, "spec.port must be between 1 and 65535")
            )

        pod_name = (template.spec.pod_template.get("metadata") or {}).get("name") or ""
        if pod_name:
            errors.append(
                FieldError(
                    ERROR_INVALID,
                    "spec.podTemplate.name",
                    pod_name,
                    "spec.podTemplate.name must not be set, as pod names are automatically generated",
                )
            )

        try:
            tomllib.loads(template.spec.buildkitd_toml)
        except tomllib.TOMLDecodeError as exc:
            errors.append(
                FieldError(
                    ERROR_INVALID,
                    "spec.buildkitToml",
                    template.spec.buildkitd_toml,
                    f"toml: error: {exc}",
                )
            )

        if errors:
            raise InvalidError("BuildkitTemplate", template.name, errors)
        return []

    def validate_create(self, obj: Any) -> list[str]:
        """Validate a new object; returns warnings, raises on rejection."""
        return self._validate(obj)

    def validate_update(self, old_obj: Any, new_obj: Any) -> list[str]:
        """Validate the updated object; returns warnings, raises on rejection."""
        return self._validate(new_obj)

    def validate_delete(self, obj: Any) -> list[str]:
        """Deletion of any BuildkitTemplate is allowed; other kinds are rejected."""
        _expect(obj, BuildkitTemplate, "BuildkitTemplate")
        return []


class BuildkitTemplateDefaulter:
    """Fills in the port and the first container's image of a BuildkitTemplate."""

    def default(self, obj: Any) -> None:
        if not isinstance(obj, BuildkitTemplate):
            raise TypeError(f"expected BuildkitTemplate object, got {type(obj).__name__}")

        if obj.spec.port == 0:
            obj.spec.port = DEFAULT_PORT

        pod_spec = obj.spec.pod_template.get("spec")
        if pod_spec is None:
            pod_spec = obj.spec.pod_template["spec"] = {}
        containers = pod_spec.get("containers")
        if not containers:
            containers = pod_spec["containers"] = [{}]
        if not containers[0].get("image"):
            containers[0]["image"] = DEFAULT_IMAGE


@dataclass(frozen=True)
class _Admission:
    validator: Any
    defaulter: BuildkitTemplateDefaulter | None = None

    def create(self, obj: Any) -> list[str]:
        if self.defaulter is not None:
            self.defaulter.default(obj)
        return self.validator.validate_create(obj)

    def update(self, old_obj: Any, new_obj: Any) -> list[str]:
        if self.defaulter is not None:
            self.defaulter.default(new_obj)
        return self.validator.validate_update(old_obj, new_obj)

    def delete(self, obj: Any) -> list[str]:
        return self.validator.validate_delete(obj)


def setup_webhooks(store: ObjectStore) -> dict[str, _Admission]:
    """Return the admission chain for each custom kind, keyed by kind."""
    return {
        "Buildkit": _Admission(validator=BuildkitValidator(store)),
        "BuildkitTemplate": _Admission(
            validator=BuildkitTemplateValidator(),
            defaulter=BuildkitTemplateDefaulter(),
        ),
    }