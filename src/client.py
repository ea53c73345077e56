"""
Dokploy API Client - Thin async wrapper around the Dokploy HTTP API.

Every call maps to one `/api/<router>.<procedure>` endpoint. Database calls
are parameterized by the variant, which selects the router name and the id
key. Failures are raised as DokployAPIError; missing objects are classified
as RemoteNotFound so callers never inspect message text.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from config import DokployConfig
from envfile import EnvOperation, format_env, parse_env
from errors import DokployAPIError, RemoteNotFound
from models import DatabaseType, RemoteApplication, RemoteDatabase

logger = logging.getLogger(__name__)

NOT_FOUND_CODE = "NOT_FOUND"


def _error_details(body: str) -> tuple[str, Optional[str]]:
    """Extract (message, error code) from an error response body."""
    try:
        data = json.loads(body)
    except (ValueError, TypeError):
        return body.strip(), None

    if not isinstance(data, dict):
        return body.strip(), None

    # Plain REST errors carry message/code at the top level, tRPC errors
    # nest them under "error" with the code in "data".
    error = data.get("error") if isinstance(data.get("error"), dict) else data
    message = error.get("message") or body.strip()
    code = error.get("code")
    if not isinstance(code, str):
        details = error.get("data")
        code = details.get("code") if isinstance(details, dict) else None
    return message, code


class DokployClient:
    """
    Async client for the Dokploy management API.

    One aiohttp session is opened per call. Calls are never retried.
    """

    def __init__(self, config: DokployConfig):
        self.api_url = config.api_url
        self.api_key = config.api_key
        self.timeout = config.timeout

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for Dokploy API requests."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _request(
        self,
        method: str,
        procedure: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call an API procedure and return the decoded JSON body.

        Raises:
            RemoteNotFound: If the object addressed by the call does not exist.
            DokployAPIError: For any other HTTP or transport failure.
        """
        url = f"{self.api_url}/{procedure}"
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        logger.debug(f"{method} {procedure}")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method,
                    url,
                    headers=self._get_headers(),
                    params=params,
                    json=payload,
                ) as response:
                    body = await response.text()
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DokployAPIError(f"Request to {procedure} failed: {e}") from e

        if status >= 400:
            message, code = _error_details(body)
            text = f"HTTP {status} calling {procedure}: {message}"
            if status == 404 or code == NOT_FOUND_CODE:
                raise RemoteNotFound(text, status=status)
            raise DokployAPIError(text, status=status)

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise DokployAPIError(
                f"Invalid JSON in response from {procedure}: {e}", status=status
            ) from e

    def _parse_database(
        self, data: Any, db_type: DatabaseType, procedure: str
    ) -> RemoteDatabase:
        if not isinstance(data, dict):
            raise DokployAPIError(f"Unexpected response from {procedure}: {data!r}")
        return RemoteDatabase.model_validate({"type": db_type.value, **data})

    # Databases

    async def create_database(
        self, db_type: DatabaseType, payload: Dict[str, Any]
    ) -> RemoteDatabase:
        """Create a database of the given variant."""
        procedure = f"{db_type.value}.create"
        data = await self._request("POST", procedure, payload=payload)
        database = self._parse_database(data, db_type, procedure)
        logger.info(f"Created {db_type.value} database {database.id}")
        return database

    async def get_database(self, database_id: str, db_type: DatabaseType) -> RemoteDatabase:
        """Fetch a database by id and variant."""
        procedure = f"{db_type.value}.one"
        data = await self._request(
            "GET", procedure, params={db_type.id_key: database_id}
        )
        return self._parse_database(data, db_type, procedure)

    async def update_database(
        self, database_id: str, db_type: DatabaseType, payload: Dict[str, Any]
    ) -> RemoteDatabase:
        """
        Update a database in place.

        Dokploy answers update calls with a bare acknowledgement, in which
        case the database is fetched again to return its current state.
        """
        procedure = f"{db_type.value}.update"
        data = await self._request(
            "POST", procedure, payload={db_type.id_key: database_id, **payload}
        )
        logger.info(f"Updated {db_type.value} database {database_id}")

        if isinstance(data, dict) and (
            "id" in data or db_type.id_key in data
        ):
            return self._parse_database(data, db_type, procedure)
        return await self.get_database(database_id, db_type)

    async def delete_database(self, database_id: str, db_type: DatabaseType) -> None:
        """Remove a database."""
        await self._request(
            "POST", f"{db_type.value}.remove", payload={db_type.id_key: database_id}
        )
        logger.info(f"Deleted {db_type.value} database {database_id}")

    async def deploy_database(self, database_id: str, db_type: DatabaseType) -> None:
        """Trigger a (re)deploy of a database."""
        await self._request(
            "POST", f"{db_type.value}.deploy", payload={db_type.id_key: database_id}
        )
        logger.info(f"Triggered deploy of {db_type.value} database {database_id}")

    # Applications

    async def get_application(self, application_id: str) -> RemoteApplication:
        """Fetch an application by id."""
        data = await self._request(
            "GET", "application.one", params={"applicationId": application_id}
        )
        if not isinstance(data, dict):
            raise DokployAPIError(f"Unexpected response from application.one: {data!r}")
        return RemoteApplication.model_validate(data)

    async def update_application_env(
        self,
        application_id: str,
        operation: EnvOperation,
        create_env_file: Optional[bool] = None,
    ) -> Dict[str, str]:
        """
        Apply a whole-block transform to an application's environment.

        The current block is read, transformed and written back in full.
        Clearing an already empty block writes nothing.

        Args:
            application_id: The owning application.
            operation: The transform to apply.
            create_env_file: Hint for whether Dokploy writes a .env file.

        Returns:
            The mapping that is now stored remotely.
        """
        application = await self.get_application(application_id)
        current = parse_env(application.env)
        desired = operation.apply(current)

        if not current and not desired:
            logger.debug(f"Environment of application {application_id} already empty")
            return desired

        payload: Dict[str, Any] = {
            "applicationId": application_id,
            "env": format_env(desired),
            "buildArgs": application.build_args,
        }
        if create_env_file is not None:
            payload["createEnvFile"] = create_env_file

        await self._request("POST", "application.saveEnvironment", payload=payload)
        logger.info(
            f"Saved {len(desired)} environment variables for application "
            f"{application_id} ({type(operation).__name__})"
        )
        return desired
