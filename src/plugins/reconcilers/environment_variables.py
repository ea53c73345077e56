"""
Environment Variables Reconciler - An application's env block as one resource.

Dokploy only supports replacing an application's whole environment block,
so each operation picks a whole-block transform:

    create  -> MergeEnv    (keys not managed here are kept)
    update  -> ReplaceEnv  (the declared mapping becomes the whole block)
    delete  -> ClearEnv

The resource has no identity of its own; its id is the application id.
"""

import logging
from dataclasses import replace
from typing import Any, Dict

from envfile import ClearEnv, MergeEnv, ReplaceEnv, parse_env
from errors import (
    DecodeError,
    DokployAPIError,
    RemoteCreateError,
    RemoteDeleteError,
    RemoteNotFound,
    RemoteReadError,
    RemoteUpdateError,
)
from models import EnvironmentVariablesState, is_known
from plugins.reconcilers.base import (
    ReconcileResult,
    ReconcilerContext,
    ReconcilerPlugin,
)
from schema import ENVIRONMENT_VARIABLES_SCHEMA, ResourceSchema

logger = logging.getLogger(__name__)


def _decode_variables(value: Any) -> Dict[str, str]:
    if not is_known(value):
        raise DecodeError("variables must be set to a mapping of strings")
    if not isinstance(value, dict):
        raise DecodeError(
            f"variables must be a mapping of strings, got {type(value).__name__}"
        )
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            raise DecodeError(f"variables must map strings to strings, bad entry {key!r}")
    return dict(value)


def _create_env_file(state: EnvironmentVariablesState) -> bool:
    if is_known(state.create_env_file):
        return state.create_env_file
    return ENVIRONMENT_VARIABLES_SCHEMA.get("create_env_file").default


class EnvironmentVariablesReconciler(ReconcilerPlugin):
    """Reconciler for the dokploy_environment_variables resource type."""

    @property
    def name(self) -> str:
        return "environment_variables"

    @property
    def schema(self) -> ResourceSchema:
        return ENVIRONMENT_VARIABLES_SCHEMA

    @property
    def state_class(self) -> type:
        return EnvironmentVariablesState

    async def create(
        self, desired: EnvironmentVariablesState, ctx: ReconcilerContext
    ) -> ReconcileResult:
        variables = _decode_variables(desired.variables)
        create_env_file = _create_env_file(desired)

        try:
            await ctx.client.update_application_env(
                desired.application_id, MergeEnv(variables), create_env_file
            )
        except DokployAPIError as e:
            raise RemoteCreateError(e.message) from e

        state = replace(
            desired,
            id=desired.application_id,
            variables=variables,
            create_env_file=create_env_file,
        )
        return ReconcileResult(state=state)

    async def read(
        self, state: EnvironmentVariablesState, ctx: ReconcilerContext
    ) -> ReconcileResult:
        try:
            application = await ctx.client.get_application(state.application_id)
        except RemoteNotFound:
            logger.warning(
                f"Application {state.application_id} no longer exists, "
                f"removing environment variables from state"
            )
            return ReconcileResult(removed=True)
        except DokployAPIError as e:
            raise RemoteReadError(e.message) from e

        # create_env_file has no remote representation; keep the tracked value.
        refreshed = replace(
            state,
            id=state.application_id,
            variables=parse_env(application.env),
            create_env_file=_create_env_file(state),
        )
        return ReconcileResult(state=refreshed)

    async def update(
        self,
        plan: EnvironmentVariablesState,
        prior: EnvironmentVariablesState,
        ctx: ReconcilerContext,
    ) -> ReconcileResult:
        variables = _decode_variables(plan.variables)
        create_env_file = _create_env_file(plan)

        try:
            await ctx.client.update_application_env(
                plan.application_id, ReplaceEnv(variables), create_env_file
            )
        except DokployAPIError as e:
            raise RemoteUpdateError(e.message) from e

        state = replace(
            plan,
            id=plan.application_id,
            variables=variables,
            create_env_file=create_env_file,
        )
        return ReconcileResult(state=state)

    async def delete(
        self, state: EnvironmentVariablesState, ctx: ReconcilerContext
    ) -> ReconcileResult:
        try:
            await ctx.client.update_application_env(
                state.application_id, ClearEnv(), _create_env_file(state)
            )
        except RemoteNotFound:
            logger.warning(
                f"Application {state.application_id} already deleted, "
                f"nothing to clear"
            )
        except DokployAPIError as e:
            raise RemoteDeleteError(e.message) from e

        return ReconcileResult(removed=True)

    def import_state(self, external_id: str) -> EnvironmentVariablesState:
        return EnvironmentVariablesState(id=external_id, application_id=external_id)
