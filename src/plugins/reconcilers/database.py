"""
Database Reconciler - Lifecycle of Dokploy database services.

One code path serves every variant. The `type` field selects the API
router (postgres, mysql, mariadb, mongo, redis); variant-specific rules
such as a required root password are validated by Dokploy, not here.
"""

import logging
from dataclasses import fields, replace
from typing import Any, Dict, List, Optional

from errors import (
    DecodeError,
    DokployAPIError,
    ImmutableFieldError,
    RemoteCreateError,
    RemoteDeleteError,
    RemoteNotFound,
    RemoteReadError,
    RemoteUpdateError,
)
from models import UNKNOWN, DatabaseState, DatabaseType, RemoteDatabase, is_known
from plugins.reconcilers.base import (
    ReconcileResult,
    ReconcilerContext,
    ReconcilerPlugin,
)
from schema import DATABASE_SCHEMA, ResourceSchema

logger = logging.getLogger(__name__)

# Fields always taken from the remote object after a successful call.
REMOTE_COMPUTED_FIELDS = (
    "app_name",
    "application_status",
    "memory_reservation",
    "memory_limit",
    "cpu_reservation",
    "cpu_limit",
    "replicas",
    "stop_grace_period",
)


def _value(value: Any) -> Any:
    """Unknown collapses to None for payload building."""
    return value if is_known(value) else None


def _database_type(value: Any) -> DatabaseType:
    try:
        return DatabaseType(value)
    except ValueError:
        supported = ", ".join(t.value for t in DatabaseType)
        raise DecodeError(
            f"Unsupported database type {value!r}. Supported types: {supported}"
        ) from None


def _decode_args(value: Any, allow_unknown: bool) -> List[str]:
    """
    Decode the args sequence for a payload.

    Null always decodes to no arguments. Unknown decodes to no arguments
    only when allow_unknown is set.
    """
    if value is None:
        return []
    if value is UNKNOWN:
        if allow_unknown:
            return []
        raise DecodeError("args value is not known; cannot decode argument list")
    if not isinstance(value, (list, tuple)):
        raise DecodeError(f"args must be a list of strings, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, str):
            raise DecodeError(
                f"args must be a list of strings, got element {item!r}"
            )
    return list(value)


def _without_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


def _resolve_app_name(state: DatabaseState, fallback: Optional[str] = None) -> Any:
    if is_known(state.app_name):
        return state.app_name
    if fallback:
        return fallback
    return _value(state.name)


class DatabaseReconciler(ReconcilerPlugin):
    """Reconciler for the dokploy_database resource type."""

    @property
    def name(self) -> str:
        return "database"

    @property
    def schema(self) -> ResourceSchema:
        return DATABASE_SCHEMA

    @property
    def state_class(self) -> type:
        return DatabaseState

    async def create(
        self, desired: DatabaseState, ctx: ReconcilerContext
    ) -> ReconcileResult:
        db_type = _database_type(desired.type)
        args = _decode_args(desired.args, allow_unknown=True)

        payload = _without_none(
            {
                "environmentId": _value(desired.environment_id),
                "name": _value(desired.name),
                "appName": _resolve_app_name(desired),
                "description": _value(desired.description),
                "databaseName": _value(desired.database_name),
                "databaseUser": _value(desired.database_user),
                "databasePassword": _value(desired.database_password),
                "databaseRootPassword": _value(desired.database_root_password),
                "dockerImage": _value(desired.docker_image),
                "serverId": _value(desired.server_id),
                "replicaSets": _value(desired.replica_sets),
                "args": args,
            }
        )

        logger.info(f"Creating {db_type.value} database {desired.name}")
        try:
            remote = await ctx.client.create_database(db_type, payload)
        except DokployAPIError as e:
            raise RemoteCreateError(e.message) from e

        state = replace(desired)
        self._apply_remote(state, remote)
        return ReconcileResult(state=state)

    async def read(self, state: DatabaseState, ctx: ReconcilerContext) -> ReconcileResult:
        if not is_known(state.id):
            raise RemoteReadError("Cannot read database: id is not set")
        if not is_known(state.type):
            raise RemoteReadError(
                f"Cannot read database {state.id}: type is not known. "
                f"Import it as '<type>:<id>'."
            )
        db_type = _database_type(state.type)

        try:
            remote = await ctx.client.get_database(state.id, db_type)
        except RemoteNotFound:
            logger.warning(
                f"{db_type.value} database {state.id} no longer exists, "
                f"removing from state"
            )
            return ReconcileResult(removed=True)
        except DokployAPIError as e:
            raise RemoteReadError(e.message) from e

        refreshed = replace(state)
        self._apply_remote(refreshed, remote, fill_missing=True)
        return ReconcileResult(state=refreshed)

    async def update(
        self, plan: DatabaseState, prior: DatabaseState, ctx: ReconcilerContext
    ) -> ReconcileResult:
        changed = self.schema.requires_replace(vars(prior), vars(plan))
        if changed:
            raise ImmutableFieldError(changed)

        database_id = prior.id
        db_type = _database_type(prior.type)
        args = _decode_args(plan.args, allow_unknown=False)

        status = plan.application_status
        if not is_known(status):
            status = prior.application_status

        payload = _without_none(
            {
                "name": _value(plan.name),
                "appName": _resolve_app_name(plan, fallback=_value(prior.app_name)),
                "description": _value(plan.description),
                "databasePassword": _value(plan.database_password),
                "databaseRootPassword": _value(plan.database_root_password),
                "dockerImage": _value(plan.docker_image),
                "serverId": _value(plan.server_id),
                "replicaSets": _value(plan.replica_sets),
                "env": _value(plan.env),
                "memoryReservation": _value(plan.memory_reservation),
                "memoryLimit": _value(plan.memory_limit),
                "cpuReservation": _value(plan.cpu_reservation),
                "cpuLimit": _value(plan.cpu_limit),
                "command": _value(plan.command),
                "applicationStatus": _value(status),
                "replicas": _value(plan.replicas),
                "stopGracePeriodSwarm": _value(plan.stop_grace_period),
                "args": args,
            }
        )

        try:
            remote = await ctx.client.update_database(database_id, db_type, payload)
        except DokployAPIError as e:
            raise RemoteUpdateError(e.message) from e

        result = ReconcileResult()
        if plan.redeploy_on_update is True:
            try:
                await ctx.client.deploy_database(database_id, db_type)
            except DokployAPIError as e:
                # The update is already committed; no rollback.
                result.add_warning("Database updated but redeploy failed", e.message)

        state = replace(plan, id=database_id)
        self._apply_remote(state, remote)
        result.state = state
        return result

    async def delete(self, state: DatabaseState, ctx: ReconcilerContext) -> ReconcileResult:
        if not is_known(state.type):
            raise RemoteDeleteError(
                f"Cannot delete database {state.id}: type is not known. "
                f"Import it as '<type>:<id>'."
            )
        db_type = _database_type(state.type)

        try:
            await ctx.client.delete_database(state.id, db_type)
        except RemoteNotFound:
            logger.warning(
                f"{db_type.value} database {state.id} already deleted"
            )
        except DokployAPIError as e:
            raise RemoteDeleteError(e.message) from e

        return ReconcileResult(removed=True)

    def import_state(self, external_id: str) -> DatabaseState:
        prefix, sep, rest = external_id.partition(":")
        if sep and prefix in {t.value for t in DatabaseType}:
            return DatabaseState(id=rest, type=prefix)
        return DatabaseState(id=external_id)

    def _apply_remote(
        self, state: DatabaseState, remote: RemoteDatabase, fill_missing: bool = False
    ) -> None:
        """
        Copy remote values into state in place.

        Computed fields always follow the remote object, null included.
        With fill_missing, user fields that are still unset (e.g. after an
        import) are filled too; fields that hold a value are never overwritten.
        """
        state.id = remote.id

        for name in REMOTE_COMPUTED_FIELDS:
            setattr(state, name, getattr(remote, name))

        if fill_missing:
            for f in fields(state):
                if f.name in REMOTE_COMPUTED_FIELDS or f.name == "args":
                    continue
                if not is_known(getattr(state, f.name)):
                    remote_value = getattr(remote, f.name, None)
                    if remote_value is not None:
                        setattr(state, f.name, remote_value)

        # Args follow the remote object; empty or absent is stored as null.
        state.args = list(remote.args) if remote.args else None

        if not is_known(state.redeploy_on_update):
            state.redeploy_on_update = False

        for f in fields(state):
            if getattr(state, f.name) is UNKNOWN:
                setattr(state, f.name, None)
