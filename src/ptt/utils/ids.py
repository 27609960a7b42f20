"""
ID generation utilities for the Production Timeline Tracker.
"""

import hashlib
from uuid import uuid4


def generate_entity_id(prefix: str) -> str:
    """
    Generate a unique ID for any entity.

    Args:
        prefix: Entity type prefix (e.g., "season", "task", "tpl")

    Returns:
        ID like "task-a1b2c3d4"

    Examples:
        >>> id = generate_entity_id("task")
        >>> id.startswith("task-")
        True
        >>> len(id)
        13
    """
    unique_bytes = uuid4().bytes
    hash_digest = hashlib.sha256(unique_bytes).hexdigest()[:8]
    return f"{prefix}-{hash_digest}"


# Common entity prefixes
PREFIX_TEMPLATE = "tpl"
PREFIX_SEASON = "season"
PREFIX_SNAPSHOT = "snap"
PREFIX_TASK = "task"
PREFIX_ATTACHMENT = "att"
