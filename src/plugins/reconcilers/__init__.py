"""
Reconciler plugins package.

Reconciler plugins own the lifecycle logic for one or more resource types.
Built-in reconcilers cover Dokploy databases and application environment
variables; others are discovered via Python entry points
(group: 'dokploy.reconcilers').
"""

from plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)
from plugins.reconcilers.database import DatabaseReconciler
from plugins.reconcilers.environment_variables import EnvironmentVariablesReconciler

__all__ = [
    "ReconcilerPlugin",
    "ReconcilerContext",
    "ReconcileResult",
    "DatabaseReconciler",
    "EnvironmentVariablesReconciler",
]
