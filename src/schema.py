"""
Resource schemas - Declarative field tables for each resource type.

A schema says which fields the user must supply, which ones reconciliation
computes, which ones are sensitive and which ones force a replacement when
changed. The orchestrator enforces replacement; reconcilers only declare it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models import UNKNOWN, DatabaseType

STRING = "string"
INTEGER = "integer"
BOOLEAN = "boolean"
STRING_LIST = "list"
STRING_MAP = "map"

_JSON_TYPES = {
    STRING: {"type": "string"},
    INTEGER: {"type": "integer"},
    BOOLEAN: {"type": "boolean"},
    STRING_LIST: {"type": "array", "items": {"type": "string"}},
    STRING_MAP: {"type": "object", "additionalProperties": {"type": "string"}},
}


@dataclass
class FieldSpec:
    """Declaration of one resource attribute."""

    name: str
    kind: str
    required: bool = False
    computed: bool = False
    sensitive: bool = False
    requires_replace: bool = False
    default: Any = None
    description: str = ""
    enum: Optional[List[str]] = None

    @property
    def optional(self) -> bool:
        return not self.required

    def to_json_schema(self) -> Dict[str, Any]:
        prop = dict(_JSON_TYPES[self.kind])
        if self.enum:
            prop["enum"] = list(self.enum)
        if not self.required:
            # A type list keeps nested errors (e.g. args.1) addressable.
            prop["type"] = [prop["type"], "null"]
            if self.enum:
                prop["enum"].append(None)
        if self.description:
            prop["description"] = self.description
        return prop


@dataclass
class ResourceSchema:
    """The full attribute table of a resource type."""

    type_name: str
    fields: List[FieldSpec] = field(default_factory=list)
    description: str = ""

    def get(self, name: str) -> Optional[FieldSpec]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def computed_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.computed]

    @property
    def replace_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.requires_replace]

    @property
    def sensitive_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.sensitive]

    def defaults(self) -> Dict[str, Any]:
        """Static defaults for optional+computed fields."""
        return {f.name: f.default for f in self.fields if f.default is not None}

    def requires_replace(
        self, prior: Dict[str, Any], plan: Dict[str, Any]
    ) -> List[str]:
        """
        List the replace-triggering fields whose value differs.

        Unknown plan values are treated as changed, matching how a planner
        has to assume the worst for values it cannot see yet.
        """
        changed = []
        for name in self.replace_fields:
            new = plan.get(name)
            if new is UNKNOWN or new != prior.get(name):
                changed.append(name)
        return changed

    def to_json_schema(self) -> Dict[str, Any]:
        """
        Render the user-facing part of the schema as JSON Schema (Draft 7).

        Computed-only fields are accepted but never required.
        """
        return {
            "type": "object",
            "description": self.description,
            "required": [f.name for f in self.fields if f.required],
            "properties": {f.name: f.to_json_schema() for f in self.fields},
            "additionalProperties": False,
        }


DATABASE_SCHEMA = ResourceSchema(
    type_name="dokploy_database",
    description="A Dokploy-managed database service.",
    fields=[
        FieldSpec("id", STRING, computed=True),
        FieldSpec("environment_id", STRING, required=True, requires_replace=True),
        FieldSpec(
            "type",
            STRING,
            required=True,
            requires_replace=True,
            enum=[t.value for t in DatabaseType],
            description="Database variant.",
        ),
        FieldSpec("name", STRING, required=True),
        FieldSpec("app_name", STRING, computed=True),
        FieldSpec("description", STRING),
        FieldSpec("database_name", STRING, required=True, requires_replace=True),
        FieldSpec("database_user", STRING, required=True, requires_replace=True),
        FieldSpec("database_password", STRING, required=True, sensitive=True),
        FieldSpec("database_root_password", STRING, sensitive=True),
        FieldSpec("docker_image", STRING),
        FieldSpec("external_port", INTEGER),
        FieldSpec("server_id", STRING),
        FieldSpec("application_status", STRING, computed=True),
        FieldSpec("replica_sets", BOOLEAN),
        FieldSpec("env", STRING),
        FieldSpec("memory_reservation", STRING),
        FieldSpec("memory_limit", STRING),
        FieldSpec("cpu_reservation", STRING),
        FieldSpec("cpu_limit", STRING),
        FieldSpec("command", STRING),
        FieldSpec("args", STRING_LIST),
        FieldSpec("replicas", INTEGER),
        FieldSpec("stop_grace_period", INTEGER),
        FieldSpec(
            "redeploy_on_update",
            BOOLEAN,
            computed=True,
            default=False,
            description="Redeploy the database after every in-place update.",
        ),
    ],
)

ENVIRONMENT_VARIABLES_SCHEMA = ResourceSchema(
    type_name="dokploy_environment_variables",
    description=(
        "Manages all environment variables for a Dokploy application "
        "as a single resource."
    ),
    fields=[
        FieldSpec("id", STRING, computed=True),
        FieldSpec("application_id", STRING, required=True),
        FieldSpec("variables", STRING_MAP, required=True, sensitive=True),
        FieldSpec(
            "create_env_file",
            BOOLEAN,
            computed=True,
            default=True,
            description="Ask Dokploy to write a .env file for the application.",
        ),
    ],
)
