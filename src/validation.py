"""
Desired-state validation against resource schemas.

Checks the shape of a user-supplied desired state (types, required
fields, unknown attributes) before it is handed to a reconciler. Variant
rules such as "mysql needs a root password" are left to the remote API.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator

from schema import ResourceSchema

logger = logging.getLogger(__name__)


def validate_desired_state(
    state: Dict[str, Any], resource_schema: ResourceSchema
) -> Tuple[bool, Optional[str]]:
    """
    Validate a desired-state dict against a resource schema.

    Args:
        state: The desired state as loaded from the user's file
        resource_schema: Schema of the resource type

    Returns:
        Tuple of (is_valid, error_message)
    """
    json_schema = resource_schema.to_json_schema()
    Draft7Validator.check_schema(json_schema)

    validator = Draft7Validator(json_schema)
    errors = sorted(
        validator.iter_errors(state),
        key=lambda e: [str(p) for p in e.absolute_path],
    )

    if not errors:
        return True, None

    error_messages = []
    for error in errors:
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        error_messages.append(f"{path}: {error.message}")

    logger.debug(
        f"{resource_schema.type_name} state rejected with {len(errors)} error(s)"
    )
    return False, "; ".join(error_messages)
