"""
MCP tools for the Campus Library server.

Each tool is a dictionary with ``name``, ``description``, ``inputSchema``, an
async ``handler`` taking the raw arguments dict, and an ``entrypoint`` whose
signature mirrors the input schema. The server registers every
``entrypoint`` in ``all_tools``.
"""

from .reservations import (
    cancel_reservation,
    checkout_reservation,
    get_my_reservation,
    get_reservation,
    list_my_reservations,
    list_reservations,
)

all_tools = [
    cancel_reservation,
    checkout_reservation,
    list_reservations,
    list_my_reservations,
    get_reservation,
    get_my_reservation,
]

__all__ = [
    "all_tools",
    "cancel_reservation",
    "checkout_reservation",
    "get_my_reservation",
    "get_reservation",
    "list_my_reservations",
    "list_reservations",
]
