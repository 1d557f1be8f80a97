"""Buildkit instance management: data model, merging, pod building, admission checks and reconciliation."""

__version__ = "0.1.0"

__all__ = [
    "api",
    "merge",
    "resources",
    "template_builder",
    "pod_builder",
    "webhooks",
    "reconcile",
    "template_reconciler",
    "buildkit_reconciler",
]