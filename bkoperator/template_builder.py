"""Derivation of the objects a BuildkitTemplate owns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .api import (
    CONDITION_TRUE,
    REASON_AVAILABLE,
    TYPE_READY,
    BuildkitTemplate,
    Condition,
)

CONFIG_MAP_KEY = "buildkitd.toml"

# Condition reported once a template's owned objects are in place.
CONDITION_READY = Condition(type=TYPE_READY, status=CONDITION_TRUE, reason=REASON_AVAILABLE)


@dataclass(frozen=True)
class TemplateBuilder:
    """Builds the ConfigMap holding a template's buildkitd.toml."""

    template: BuildkitTemplate | None

    def config_map_name(self) -> str:
        """Return the name the template's ConfigMap has, whether or not it exists."""
        if self.template is None:
            return ""
        return f"buildkit-{self.template.name}-toml"

    def config_map(self) -> dict[str, Any] | None:
        """Return the ConfigMap for the template, or None if it has no TOML."""
        if self.template is None or not self.template.spec.buildkitd_toml:
            return None
        return {
            "metadata": {
                "name": self.config_map_name(),
                "namespace": self.template.namespace,
            },
            "data": {CONFIG_MAP_KEY: self.template.spec.buildkitd_toml},
        }