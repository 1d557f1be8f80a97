"""Reconciliation of BuildkitTemplate objects into their ConfigMaps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .api import BuildkitTemplate, ObjectStore, TypedObjectRef
from .reconcile import ControlPlaneContext, OutputSet, Result, _commit, _record, done_result
from .template_builder import CONDITION_READY, TemplateBuilder

_log = logging.getLogger(__name__)


@dataclass
class TemplateReconciler:
    """Keeps a template's ConfigMap in line with its buildkitd.toml."""

    store: ObjectStore
    context: ControlPlaneContext = field(default_factory=ControlPlaneContext)

    def reconcile(self, template: BuildkitTemplate) -> Result:
        """Create, update or remove the ConfigMap and set the Ready condition."""
        out = OutputSet()
        builder = TemplateBuilder(template)
        config_map = builder.config_map()
        if config_map is not None:
            _log.debug(
                "applying configmap %s (name=%s, namespace=%s)",
                config_map["metadata"]["name"],
                template.name,
                template.namespace,
            )
            out.apply("ConfigMap", config_map)
        else:
            _log.debug(
                "removing configmap %s (name=%s, namespace=%s)",
                builder.config_map_name(),
                template.name,
                template.namespace,
            )
            out.delete_by_ref(
                TypedObjectRef(
                    version="v1",
                    kind="ConfigMap",
                    name=builder.config_map_name(),
                    namespace=template.namespace,
                )
            )

        result = done_result()
        _commit(self.store, out, template.status)
        _record(template, CONDITION_READY, result)
        return result