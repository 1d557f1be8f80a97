"""Construction of the pod that runs a Buildkit instance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .api import (
    CONDITION_TRUE,
    REASON_AVAILABLE,
    TYPE_DEPLOYED,
    Buildkit,
    Condition,
    ObjectKey,
    ObjectStore,
)
from .merge import merge_maps, merge_objects
from .resources import merge_resources
from .template_builder import TemplateBuilder

BUILDKIT_CONTAINER_NAME = "buildkit"
DEFAULT_IMAGE = "moby/buildkit:latest"

# Condition reported once the instance's pod is running and ready.
CONDITION_DEPLOYED = Condition(
    type=TYPE_DEPLOYED, status=CONDITION_TRUE, reason=REASON_AVAILABLE
)


def _probe(port: int, period_seconds: int, failure_threshold: int) -> dict[str, Any]:
    return {
        "grpc": {"port": port},
        "initialDelaySeconds": 5,
        "periodSeconds": period_seconds,
        "failureThreshold": failure_threshold,
    }


@dataclass
class PodBuilder:
    """Builds the pod of a Buildkit instance from its BuildkitTemplate."""

    buildkit: Buildkit
    store: ObjectStore

    def build_pod(self) -> dict[str, Any]:
        """Return the pod in its JSON form; raises NotFoundError without a template."""
        buildkit = self.buildkit
        template = self.store.get(
            "BuildkitTemplate",
            ObjectKey(namespace=buildkit.namespace, name=buildkit.spec.template),
        )
        port = template.spec.port

        # Overridable defaults; required values are applied last.
        container: dict[str, Any] = {
            "name": BUILDKIT_CONTAINER_NAME,
            "image": DEFAULT_IMAGE,
            "volumeMounts": [
                {"name": "buildkitd", "mountPath": "/home/user/.local/share/buildkit"}
            ],
            "args": ["--addr", f"tcp://0.0.0.0:{port}"],
            "ports": [{"name": "tcp", "containerPort": port, "protocol": "TCP"}],
            "readinessProbe": _probe(port, period_seconds=15, failure_threshold=2),
            "livenessProbe": _probe(port, period_seconds=30, failure_threshold=6),
        }
        metadata: dict[str, Any] = {
            "labels": merge_maps({"app.kubernetes.io/name": "buildkit"}, buildkit.spec.labels)
        }
        if buildkit.spec.annotations:
            metadata["annotations"] = dict(buildkit.spec.annotations)

        pod: dict[str, Any] = {
            "metadata": metadata,
            "spec": {
                "containers": [container],
                "volumes": [{"name": "buildkitd", "emptyDir": {}}],
                "restartPolicy": "Never",
                "terminationGracePeriodSeconds": 900,
            },
        }

        config_map = TemplateBuilder(template).config_map()
        if config_map is not None:
            pod["spec"]["volumes"].append(
                {"name": "config", "configMap": {"name": config_map["metadata"]["name"]}}
            )
            container["volumeMounts"].append(
                {"name": "config", "mountPath": "/home/user/.config/buildkit"}
            )

        # Resource defaults are those of the built-in container, before the
        # template is applied.
        default_resources = dict(container.get("resources") or {})
        pod_template = template.spec.pod_template
        merge_objects(
            pod,
            {
                "metadata": pod_template.get("metadata") or {},
                "spec": pod_template.get("spec") or {},
            },
            {
                "metadata": {
                    "generateName": f"{buildkit.name}-",
                    "namespace": buildkit.namespace,
                },
                "spec": {
                    "containers": [
                        {
                            "name": BUILDKIT_CONTAINER_NAME,
                            "resources": merge_resources(
                                buildkit.spec.resources, default_resources
                            ),
                        }
                    ]
                },
            },
        )
        return pod