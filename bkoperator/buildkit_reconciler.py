"""Reconciliation of Buildkit objects into exactly one running pod."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .api import (
    CONDITION_FALSE,
    REASON_UNAVAILABLE,
    Buildkit,
    Condition,
    NotFoundError,
    ObjectStore,
)
from .pod_builder import CONDITION_DEPLOYED, PodBuilder
from .reconcile import (
    ControlPlaneContext,
    OutputSet,
    Result,
    _commit,
    _record,
    done_result,
    requeue_result,
)

_log = logging.getLogger(__name__)


def _join_host_port(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


@dataclass
class BuildkitReconciler:
    """Runs one Buildkit pod per Buildkit object and reports its endpoint."""

    store: ObjectStore
    context: ControlPlaneContext = field(default_factory=ControlPlaneContext)

    def reconcile(self, buildkit: Buildkit) -> Result:
        """Run one pass, apply its changes and set the Deployed and Ready conditions."""
        out = OutputSet()
        result = self._run(buildkit, out)
        _commit(self.store, out, buildkit.status)
        _record(buildkit, CONDITION_DEPLOYED, result)
        return result

    def _run(self, buildkit: Buildkit, out: OutputSet) -> Result:
        managed_pods = self.existing_managed_pods(buildkit)
        pod = self.ensure_exactly_one_pod(buildkit, managed_pods, out)

        if out.applied or out.deleted:
            return Result(
                done=True,
                requeue_after_completion=True,
                requeue_msg="Applying pod changes",
                reason="ApplyingChanges",
            )

        # Only set once the pod is confirmed running and healthy.
        buildkit.status.endpoint = ""

        pod_name = (pod.get("metadata") or {}).get("name", "")
        status = pod.get("status") or {}
        phase = status.get("phase", "")

        if phase == "Failed":
            _log.warning(
                "Buildkit pod %s has failed: reason=%s message=%s",
                pod_name,
                status.get("reason", ""),
                status.get("message", ""),
            )
            detail = status.get("message") or status.get("reason") or "unknown failure"
            return Result(
                done=True,
                custom_status_condition=Condition(
                    type="",
                    status=CONDITION_FALSE,
                    reason=REASON_UNAVAILABLE,
                    message=f"Buildkit pod {pod_name} has failed: {detail}",
                ),
            )

        if phase != "Running":
            _log.debug("Buildkit pod %s is not yet running (phase=%s)", pod_name, phase)
            return requeue_result("Buildkit pod not running", "PodNotRunning")

        for container_status in status.get("containerStatuses") or []:
            if not container_status.get("ready"):
                _log.debug(
                    "Buildkit pod %s container %s not ready",
                    pod_name,
                    container_status.get("name", ""),
                )
                return requeue_result("Buildkit pod container not ready", "ContainerNotReady")

        port = pod["spec"]["containers"][0]["ports"][0]["containerPort"]
        buildkit.status.endpoint = f"tcp://{_join_host_port(status.get('podIP', ''), port)}"
        return done_result()

    def existing_managed_pods(self, buildkit: Buildkit) -> list[dict[str, Any]]:
        """Return the pods tracked in the object's managed resources that still exist."""
        pods = []
        for ref in buildkit.status.resource_refs:
            if ref.kind != "Pod":
                continue
            try:
                pods.append(self.store.get("Pod", ref.object_key()))
            except NotFoundError:
                # Deleted behind our back; the stale reference is pruned on commit.
                _log.warning(
                    "managed resource '%s' not found, an external actor may have deleted it",
                    ref.object_key(),
                )
        return pods

    def ensure_exactly_one_pod(
        self, buildkit: Buildkit, managed_pods: list[dict[str, Any]], out: OutputSet
    ) -> dict[str, Any]:
        """Queue creation of a missing pod or deletion of extras; return the pod kept."""
        if len(managed_pods) > 1:
            _log.warning(
                "Multiple Buildkit pods found, deleting extras (count=%d)", len(managed_pods)
            )
            for extra in managed_pods[1:]:
                out.delete("Pod", extra)
            return managed_pods[0]

        if not managed_pods:
            try:
                pod = PodBuilder(buildkit, self.store).build_pod()
            except Exception as exc:
                _log.error("Failed to generate Buildkit pod definition: %s", exc)
                exc.add_note("failed to build Buildkit pod")
                raise
            _log.info(
                "Starting Buildkit instance (name=%s, namespace=%s)",
                buildkit.name,
                buildkit.namespace,
            )
            out.apply("Pod", pod)
            return pod

        return managed_pods[0]