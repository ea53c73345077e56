"""Unit tests for client.py - Dokploy API client."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from client import DokployClient, _error_details
from config import DokployConfig
from envfile import ClearEnv, MergeEnv, ReplaceEnv
from errors import DecodeError, DokployAPIError, RemoteNotFound
from models import DatabaseType, RemoteApplication


@pytest.fixture
def client():
    return DokployClient(
        DokployConfig(host="https://dokploy.example.com/", api_key="key-123", timeout=5)
    )


class TestErrorDetails:
    """Tests for error body parsing."""

    def test_plain_text(self):
        assert _error_details("Not Found") == ("Not Found", None)

    def test_rest_error(self):
        body = json.dumps({"message": "Postgres not found", "code": "NOT_FOUND"})
        assert _error_details(body) == ("Postgres not found", "NOT_FOUND")

    def test_trpc_error(self):
        body = json.dumps(
            {
                "error": {
                    "message": "Application not found",
                    "data": {"code": "NOT_FOUND", "httpStatus": 404},
                }
            }
        )
        assert _error_details(body) == ("Application not found", "NOT_FOUND")

    def test_json_without_message(self):
        assert _error_details('["oops"]') == ('["oops"]', None)

    @pytest.mark.parametrize("details", ["internal", ["NOT_FOUND"], None])
    def test_trpc_error_with_non_object_data(self, details):
        body = json.dumps({"error": {"message": "Server crashed", "data": details}})
        assert _error_details(body) == ("Server crashed", None)


@pytest.mark.asyncio
class TestRequest:
    """Tests for the HTTP layer."""

    async def test_builds_url_and_headers(self, client, http_session):
        session_cls, session = http_session(200, json.dumps({"postgresId": "pg-1"}))

        with patch("client.aiohttp.ClientSession", session_cls):
            await client.get_database("pg-1", DatabaseType.POSTGRES)

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "GET"
        assert url == "https://dokploy.example.com/api/postgres.one"
        assert kwargs["params"] == {"postgresId": "pg-1"}
        assert kwargs["headers"]["x-api-key"] == "key-123"

    async def test_404_raises_not_found(self, client, http_session):
        session_cls, _ = http_session(404, "Not Found")

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(RemoteNotFound) as exc_info:
                await client.get_database("pg-1", DatabaseType.POSTGRES)

        assert exc_info.value.status == 404
        assert "Not Found" in exc_info.value.message

    async def test_not_found_code_raises_not_found(self, client, http_session):
        body = json.dumps({"message": "Mongo not found", "code": "NOT_FOUND"})
        session_cls, _ = http_session(400, body)

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(RemoteNotFound):
                await client.get_database("m-1", DatabaseType.MONGO)

    async def test_server_error_raises_api_error(self, client, http_session):
        body = json.dumps({"message": "Database password is required"})
        session_cls, _ = http_session(400, body)

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError) as exc_info:
                await client.create_database(DatabaseType.MYSQL, {"name": "db"})

        assert not isinstance(exc_info.value, RemoteNotFound)
        assert exc_info.value.status == 400
        assert "Database password is required" in exc_info.value.message

    async def test_malformed_trpc_error_is_wrapped(self, client, http_session):
        body = json.dumps({"error": {"message": "Server crashed", "data": "oops"}})
        session_cls, _ = http_session(500, body)

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError, match="Server crashed") as exc_info:
                await client.get_database("pg-1", DatabaseType.POSTGRES)

        assert exc_info.value.status == 500

    async def test_not_found_text_in_500_is_not_classified(self, client, http_session):
        session_cls, _ = http_session(500, "upstream 404 page")

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError) as exc_info:
                await client.get_database("pg-1", DatabaseType.POSTGRES)

        assert not isinstance(exc_info.value, RemoteNotFound)

    async def test_transport_error(self, client):
        session_cls = MagicMock(side_effect=aiohttp.ClientError("connection refused"))

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError, match="connection refused") as exc_info:
                await client.get_database("pg-1", DatabaseType.POSTGRES)

        assert exc_info.value.status is None

    async def test_timeout(self, client):
        session_cls = MagicMock(side_effect=asyncio.TimeoutError())

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError, match="postgres.one failed"):
                await client.get_database("pg-1", DatabaseType.POSTGRES)

    async def test_invalid_json(self, client, http_session):
        session_cls, _ = http_session(200, "<html>")

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError, match="Invalid JSON"):
                await client.get_database("pg-1", DatabaseType.POSTGRES)


@pytest.mark.asyncio
class TestDatabaseCalls:
    """Tests for the variant-parameterized database calls."""

    async def test_create_uses_variant_router(self, client, http_session):
        session_cls, session = http_session(200, json.dumps({"redisId": "r-1"}))

        with patch("client.aiohttp.ClientSession", session_cls):
            remote = await client.create_database(DatabaseType.REDIS, {"name": "cache"})

        assert session.request.call_args.args == (
            "POST",
            "https://dokploy.example.com/api/redis.create",
        )
        assert session.request.call_args.kwargs["json"] == {"name": "cache"}
        assert remote.id == "r-1"
        assert remote.type == "redis"

    async def test_create_with_non_object_response(self, client, http_session):
        session_cls, _ = http_session(200, "true")

        with patch("client.aiohttp.ClientSession", session_cls):
            with pytest.raises(DokployAPIError, match="Unexpected response"):
                await client.create_database(DatabaseType.REDIS, {"name": "cache"})

    async def test_update_returning_object(self, client):
        client._request = AsyncMock(
            return_value={"mariadbId": "ma-1", "name": "renamed"}
        )

        remote = await client.update_database(
            "ma-1", DatabaseType.MARIADB, {"name": "renamed"}
        )

        client._request.assert_awaited_once_with(
            "POST",
            "mariadb.update",
            payload={"mariadbId": "ma-1", "name": "renamed"},
        )
        assert remote.name == "renamed"

    async def test_update_acknowledgement_refetches(self, client):
        client._request = AsyncMock(
            side_effect=[True, {"mysqlId": "my-1", "name": "renamed"}]
        )

        remote = await client.update_database(
            "my-1", DatabaseType.MYSQL, {"name": "renamed"}
        )

        assert client._request.await_count == 2
        assert client._request.await_args_list[1].args == ("GET", "mysql.one")
        assert remote.id == "my-1"

    async def test_delete_and_deploy(self, client):
        client._request = AsyncMock(return_value=None)

        await client.delete_database("m-1", DatabaseType.MONGO)
        await client.deploy_database("m-1", DatabaseType.MONGO)

        calls = client._request.await_args_list
        assert calls[0].args == ("POST", "mongo.remove")
        assert calls[0].kwargs == {"payload": {"mongoId": "m-1"}}
        assert calls[1].args == ("POST", "mongo.deploy")


@pytest.mark.asyncio
class TestApplicationEnv:
    """Tests for whole-block env updates."""

    @pytest.fixture
    def client_with_app(self, client):
        client.get_application = AsyncMock(
            return_value=RemoteApplication(
                application_id="app-1", env="A=1\nB=2\n", build_args="NODE_ENV=prod"
            )
        )
        client._request = AsyncMock(return_value=True)
        return client

    async def test_merge_writes_whole_block(self, client_with_app):
        result = await client_with_app.update_application_env(
            "app-1", MergeEnv({"B": "3", "C": "4"}), True
        )

        assert result == {"A": "1", "B": "3", "C": "4"}
        client_with_app._request.assert_awaited_once_with(
            "POST",
            "application.saveEnvironment",
            payload={
                "applicationId": "app-1",
                "env": "A=1\nB=3\nC=4\n",
                "buildArgs": "NODE_ENV=prod",
                "createEnvFile": True,
            },
        )

    async def test_replace(self, client_with_app):
        result = await client_with_app.update_application_env(
            "app-1", ReplaceEnv({"B": "3"})
        )

        assert result == {"B": "3"}
        payload = client_with_app._request.await_args.kwargs["payload"]
        assert payload["env"] == "B=3\n"
        assert "createEnvFile" not in payload

    async def test_clear_writes_empty_block(self, client_with_app):
        result = await client_with_app.update_application_env("app-1", ClearEnv(), False)

        assert result == {}
        payload = client_with_app._request.await_args.kwargs["payload"]
        assert payload["env"] == ""
        assert payload["createEnvFile"] is False

    async def test_clear_already_empty_is_noop(self, client):
        client.get_application = AsyncMock(
            return_value=RemoteApplication(application_id="app-1", env="")
        )
        client._request = AsyncMock()

        result = await client.update_application_env("app-1", ClearEnv())

        assert result == {}
        client._request.assert_not_called()

    async def test_malformed_remote_block(self, client):
        client.get_application = AsyncMock(
            return_value=RemoteApplication(application_id="app-1", env="BROKEN\n")
        )
        client._request = AsyncMock()

        with pytest.raises(DecodeError):
            await client.update_application_env("app-1", MergeEnv({"A": "1"}))

        client._request.assert_not_called()

    async def test_get_application_not_found_propagates(self, client):
        client._request = AsyncMock(side_effect=RemoteNotFound("HTTP 404", status=404))

        with pytest.raises(RemoteNotFound):
            await client.update_application_env("app-1", ClearEnv())
