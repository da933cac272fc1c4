"""
ID generation utilities for TopicMind.

Provides consistent ID generation for all entity types:
- Nodes: node_xxx
- Messages: msg_xxx
- Key facts: fact_xxx
"""

from uuid import uuid4


def generate_node_id() -> str:
    """
    Generate unique Node ID.

    Returns:
        ID in format "node_xxx" where xxx is 12 hex characters
    """
    return f"node_{uuid4().hex[:12]}"


def generate_message_id() -> str:
    """
    Generate unique Message ID.

    Returns:
        ID in format "msg_xxx" where xxx is 12 hex characters
    """
    return f"msg_{uuid4().hex[:12]}"


def generate_fact_id() -> str:
    """
    Generate unique KeyFact ID.

    Returns:
        ID in format "fact_xxx" where xxx is 12 hex characters
    """
    return f"fact_{uuid4().hex[:12]}"
