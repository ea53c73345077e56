"""
Core resource models.

Desired and reconciled state are plain dataclasses the caller persists as
dicts. Remote state is parsed from API JSON with pydantic models.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Unknown:
    """Sentinel for a value that is not known at plan time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNKNOWN: Any = _Unknown()


def is_known(value: Any) -> bool:
    """True if the value is neither null nor unknown."""
    return value is not None and value is not UNKNOWN


class DatabaseType(Enum):
    """Supported database variants. The value is the Dokploy router name."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    MONGO = "mongo"
    REDIS = "redis"

    @property
    def id_key(self) -> str:
        """Name of the id field in API payloads (e.g. 'postgresId')."""
        return f"{self.value}Id"


class _StateMixin:
    """dict conversion shared by the state dataclasses."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Build a state from a dict, ignoring keys that are not fields."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for persistence. Unknown values are dropped."""
        return {k: v for k, v in asdict(self).items() if v is not UNKNOWN}


@dataclass
class DatabaseState(_StateMixin):
    """Desired or reconciled state of a dokploy_database resource."""

    id: Optional[str] = None
    environment_id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    app_name: Optional[str] = None
    description: Optional[str] = None
    database_name: Optional[str] = None
    database_user: Optional[str] = None
    database_password: Optional[str] = field(default=None, repr=False)
    database_root_password: Optional[str] = field(default=None, repr=False)
    docker_image: Optional[str] = None
    external_port: Optional[int] = None
    server_id: Optional[str] = None
    application_status: Optional[str] = None
    replica_sets: Optional[bool] = None
    env: Optional[str] = None
    memory_reservation: Optional[str] = None
    memory_limit: Optional[str] = None
    cpu_reservation: Optional[str] = None
    cpu_limit: Optional[str] = None
    command: Optional[str] = None
    args: Optional[List[str]] = None
    replicas: Optional[int] = None
    stop_grace_period: Optional[int] = None
    redeploy_on_update: Optional[bool] = False


@dataclass
class EnvironmentVariablesState(_StateMixin):
    """Desired or reconciled state of a dokploy_environment_variables resource."""

    id: Optional[str] = None
    application_id: Optional[str] = None
    variables: Optional[Dict[str, str]] = field(default=None, repr=False)
    create_env_file: Optional[bool] = True


class RemoteDatabase(BaseModel):
    """A database object as returned by the Dokploy API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: Optional[str] = None
    name: Optional[str] = None
    app_name: Optional[str] = Field(None, alias="appName")
    description: Optional[str] = None
    environment_id: Optional[str] = Field(None, alias="environmentId")
    database_name: Optional[str] = Field(None, alias="databaseName")
    database_user: Optional[str] = Field(None, alias="databaseUser")
    database_password: Optional[str] = Field(None, alias="databasePassword", repr=False)
    database_root_password: Optional[str] = Field(
        None, alias="databaseRootPassword", repr=False
    )
    docker_image: Optional[str] = Field(None, alias="dockerImage")
    external_port: Optional[int] = Field(None, alias="externalPort")
    server_id: Optional[str] = Field(None, alias="serverId")
    application_status: Optional[str] = Field(None, alias="applicationStatus")
    replica_sets: Optional[bool] = Field(None, alias="replicaSets")
    env: Optional[str] = None
    memory_reservation: Optional[str] = Field(None, alias="memoryReservation")
    memory_limit: Optional[str] = Field(None, alias="memoryLimit")
    cpu_reservation: Optional[str] = Field(None, alias="cpuReservation")
    cpu_limit: Optional[str] = Field(None, alias="cpuLimit")
    command: Optional[str] = None
    args: Optional[List[str]] = None
    replicas: Optional[int] = None
    stop_grace_period: Optional[int] = Field(None, alias="stopGracePeriodSwarm")

    @model_validator(mode="before")
    @classmethod
    def normalize_id(cls, data: Any) -> Any:
        """Map the variant-specific id key (e.g. 'mysqlId') onto 'id'."""
        if not isinstance(data, dict) or "id" in data:
            return data
        for db_type in DatabaseType:
            if db_type.id_key in data:
                return {
                    **data,
                    "id": data[db_type.id_key],
                    "type": data.get("type") or db_type.value,
                }
        return data


class RemoteApplication(BaseModel):
    """The subset of a Dokploy application the env reconciler needs."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    application_id: str = Field(..., alias="applicationId")
    name: Optional[str] = None
    env: Optional[str] = None
    build_args: Optional[str] = Field(None, alias="buildArgs")
