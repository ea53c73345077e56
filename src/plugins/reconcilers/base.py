"""
Reconciler Plugin Base - Abstract lifecycle interface for resource types.

A reconciler owns the mapping between one resource type's desired state and
the Dokploy API. The caller (the lifecycle runner) invokes exactly one
operation per pass and persists whatever state comes back.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from client import DokployClient
from config import DokployConfig
from errors import SecondaryOperationWarning
from schema import ResourceSchema

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of one reconciliation pass."""

    state: Optional[Any] = None
    # The remote object is gone; the caller must drop it from tracked state.
    removed: bool = False
    warnings: List[SecondaryOperationWarning] = field(default_factory=list)

    def add_warning(self, summary: str, detail: str) -> None:
        """Record a non-fatal problem and log it."""
        warning = SecondaryOperationWarning(summary, detail)
        logger.warning(str(warning))
        self.warnings.append(warning)


class ReconcilerContext:
    """
    Context provided to reconciler plugins by the lifecycle runner.

    Gives reconcilers access to the remote API client.
    """

    def __init__(self, client: DokployClient):
        self.client = client

    @classmethod
    def from_config(cls, config: DokployConfig) -> "ReconcilerContext":
        """Build a context with a client for the configured Dokploy host."""
        return cls(client=DokployClient(config))


class ReconcilerPlugin(ABC):
    """
    Abstract base class for reconciler plugins.

    Reconcilers are registered with the PluginRegistry by resource type
    name. Third-party reconcilers are discovered via Python entry points
    in the 'dokploy.reconcilers' group.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this reconciler."""
        pass

    @property
    @abstractmethod
    def schema(self) -> ResourceSchema:
        """Declared attribute table of the managed resource type."""
        pass

    @property
    @abstractmethod
    def state_class(self) -> type:
        """Dataclass used for desired and reconciled state."""
        pass

    @property
    def resource_types(self) -> List[str]:
        """Resource type names this reconciler handles."""
        return [self.schema.type_name]

    def state_from_dict(self, data: Dict[str, Any]) -> Any:
        """
        Build a state object, applying schema defaults to unset fields.

        Args:
            data: Plain dict as loaded from a config or state file.

        Returns:
            An instance of state_class.
        """
        merged = dict(data)
        for name, default in self.schema.defaults().items():
            if merged.get(name) is None:
                merged[name] = default
        return self.state_class.from_dict(merged)

    @abstractmethod
    async def create(self, desired: Any, ctx: ReconcilerContext) -> ReconcileResult:
        """
        Create the remote object described by the desired state.

        Returns:
            ReconcileResult whose state has computed fields populated.
        """
        pass

    @abstractmethod
    async def read(self, state: Any, ctx: ReconcilerContext) -> ReconcileResult:
        """
        Refresh tracked state from the remote object.

        Returns:
            ReconcileResult with removed=True if the object no longer exists.
        """
        pass

    @abstractmethod
    async def update(
        self, plan: Any, prior: Any, ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Apply the planned state in place.

        Args:
            plan: The new desired state.
            prior: The state persisted after the previous pass.
            ctx: ReconcilerContext for remote calls.
        """
        pass

    @abstractmethod
    async def delete(self, state: Any, ctx: ReconcilerContext) -> ReconcileResult:
        """Destroy the remote object. Deleting a missing object succeeds."""
        pass

    @abstractmethod
    def import_state(self, external_id: str) -> Any:
        """Seed tracked state from an external identifier. No remote calls."""
        pass
