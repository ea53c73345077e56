"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from models import (
    DatabaseState,
    EnvironmentVariablesState,
    RemoteApplication,
    RemoteDatabase,
)
from plugins.reconcilers.base import ReconcilerContext


def _mock_http_session(status=200, body=""):
    """
    Build a patched aiohttp.ClientSession class returning one response.

    Returns:
        Tuple of (session class mock, session mock) so tests can inspect
        the request that was made.
    """
    mock_resp = AsyncMock()
    mock_resp.status = status
    mock_resp.text = AsyncMock(return_value=body)

    mock_session = AsyncMock()
    mock_session.request = MagicMock(
        return_value=AsyncMock(
            __aenter__=AsyncMock(return_value=mock_resp),
            __aexit__=AsyncMock(return_value=False),
        )
    )

    session_cls = MagicMock(
        return_value=AsyncMock(
            __aenter__=AsyncMock(return_value=mock_session),
            __aexit__=AsyncMock(return_value=False),
        )
    )
    return session_cls, mock_session


@pytest.fixture
def http_session():
    """Factory fixture for a patched aiohttp.ClientSession class."""
    return _mock_http_session


@pytest.fixture
def mock_client():
    """Create a mock DokployClient."""
    client = AsyncMock()
    client.create_database = AsyncMock()
    client.get_database = AsyncMock()
    client.update_database = AsyncMock()
    client.delete_database = AsyncMock(return_value=None)
    client.deploy_database = AsyncMock(return_value=None)
    client.get_application = AsyncMock()
    client.update_application_env = AsyncMock(return_value={})
    return client


@pytest.fixture
def ctx(mock_client):
    return ReconcilerContext(client=mock_client)


@pytest.fixture
def desired_postgres():
    """Desired state of a postgres database as a user would declare it."""
    return DatabaseState(
        environment_id="env-1",
        type="postgres",
        name="orders-db",
        description="Orders database",
        database_name="orders",
        database_user="orders",
        database_password="s3cret",
        docker_image="postgres:15",
        args=["--max-connections=100"],
    )


@pytest.fixture
def remote_postgres():
    """Remote object returned by Dokploy for the postgres database."""
    return RemoteDatabase.model_validate(
        {
            "postgresId": "pg-123",
            "name": "orders-db",
            "appName": "orders-db-x1y2z3",
            "description": "Orders database",
            "environmentId": "env-1",
            "databaseName": "orders",
            "databaseUser": "orders",
            "databasePassword": "s3cret",
            "dockerImage": "postgres:15",
            "applicationStatus": "done",
            "memoryReservation": None,
            "memoryLimit": "512m",
            "cpuReservation": None,
            "cpuLimit": "1",
            "replicas": 1,
            "stopGracePeriodSwarm": 30,
            "args": ["--max-connections=100"],
        }
    )


@pytest.fixture
def tracked_env_vars():
    return EnvironmentVariablesState(
        id="app-1",
        application_id="app-1",
        variables={"FOO": "bar"},
        create_env_file=False,
    )


@pytest.fixture
def remote_application():
    return RemoteApplication.model_validate(
        {
            "applicationId": "app-1",
            "name": "web",
            "env": "FOO=bar\nBAZ=qux\n",
            "buildArgs": None,
        }
    )
