"""
Reservation tools for the Campus Library MCP server.

Each tool is a thin adapter between the authenticated request layer and the
reservation services:

1. INPUT: validate raw arguments with a Pydantic schema (400 on failure)
2. CALL: run the lifecycle manager or query service
3. OUTPUT: structured ``data`` / ``meta`` on success, or the uniform
   ``{"statusCode", "message"}`` error shape

The caller identity arrives as ``auth_user.profile_id``; authentication itself
happens before the tool is invoked.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..config import get_config
from ..database.repository import Page, PaginationParams
from ..database.session import get_db_manager
from ..errors import BadRequestError, LibraryError, TransactionFailedError
from ..services.lifecycle import ReservationLifecycleManager
from ..services.queries import (
    MyReservationFilters,
    ReservationQueryService,
    StaffReservationFilters,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SERVICE WIRING
# =============================================================================


class _ServiceStore:
    """Service instances built once on first use."""

    lifecycle: ReservationLifecycleManager | None = None
    queries: ReservationQueryService | None = None


def get_lifecycle_manager() -> ReservationLifecycleManager:
    if _ServiceStore.lifecycle is None:
        _ServiceStore.lifecycle = ReservationLifecycleManager(get_db_manager())
    return _ServiceStore.lifecycle


def get_query_service() -> ReservationQueryService:
    if _ServiceStore.queries is None:
        _ServiceStore.queries = ReservationQueryService(
            get_db_manager(), max_page_size=get_config().max_page_size
        )
    return _ServiceStore.queries


def reset_services() -> None:
    """Forget the cached services (useful for testing)."""
    _ServiceStore.lifecycle = None
    _ServiceStore.queries = None


# =============================================================================
# INPUT SCHEMAS
# =============================================================================


class AuthUser(BaseModel):
    """Identity supplied by the authentication layer."""

    profile_id: str = Field(
        ...,
        description="Profile id of the signed-in student or staff member",
        min_length=1,
        examples=["student_rahim"],
    )


class ReservationActionInput(BaseModel):
    """Input for cancel_reservation and checkout_reservation."""

    auth_user: AuthUser

    reservation_id: str = Field(
        ...,
        description="Reservation to act on",
        min_length=1,
        examples=["reservation_5f2c9e1a7b3d"],
    )


class ReservationLookupInput(BaseModel):
    """Input for get_reservation and get_my_reservation."""

    auth_user: AuthUser | None = None

    reservation_id: str = Field(..., min_length=1)


class StaffListInput(BaseModel):
    """Input for list_reservations."""

    filters: StaffReservationFilters = Field(default_factory=StaffReservationFilters)

    pagination: dict[str, Any] = Field(
        default_factory=dict,
        description="page, limit, sort_by, sort_order",
        examples=[{"page": 1, "limit": 10, "sort_by": "created_at", "sort_order": "desc"}],
    )


class MyListInput(BaseModel):
    """Input for list_my_reservations."""

    auth_user: AuthUser

    filters: MyReservationFilters = Field(default_factory=MyReservationFilters)

    pagination: dict[str, Any] = Field(default_factory=dict)


def _pagination(raw: dict[str, Any]) -> PaginationParams:
    values = {"limit": get_config().default_page_size, **raw}
    try:
        return PaginationParams.model_validate(values)
    except ValidationError as e:
        raise BadRequestError(f"Invalid pagination options: {e}") from e


# =============================================================================
# RESPONSE HELPERS
# =============================================================================


def _error_response(error: LibraryError) -> dict[str, Any]:
    return {
        "isError": True,
        "error": error.to_dict(),
        "content": [{"type": "text", "text": error.message}],
    }


def _page_response(message: str, page: Page) -> dict[str, Any]:
    dumped = page.model_dump(mode="json", by_alias=True)
    return {
        "content": [{"type": "text", "text": message}],
        "data": dumped["data"],
        "meta": dumped["meta"],
    }


def _run_tool(
    tool_name: str,
    schema: type[BaseModel],
    arguments: dict[str, Any],
    action: Callable[[Any], dict[str, Any]],
) -> dict[str, Any]:
    """Validate arguments, run the action and map errors to the uniform shape."""
    try:
        params = schema.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid %s parameters: %s", tool_name, e)
        return _error_response(BadRequestError(f"Invalid {tool_name} parameters: {e}"))

    try:
        return action(params)
    except LibraryError as e:
        logger.info("%s failed (%s): %s", tool_name, e.status_code, e.message)
        return _error_response(e)
    except Exception:
        logger.exception("Unexpected error in %s tool", tool_name)
        return _error_response(TransactionFailedError("Internal server error!"))


# =============================================================================
# HANDLERS
# =============================================================================


async def cancel_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Cancel the caller's awaiting reservation and release its copy."""

    def action(params: ReservationActionInput) -> dict[str, Any]:
        get_lifecycle_manager().cancel(params.auth_user.profile_id, params.reservation_id)
        return {
            "content": [
                {"type": "text", "text": f"Reservation {params.reservation_id} canceled"}
            ],
            "data": None,
        }

    return _run_tool("cancel_reservation", ReservationActionInput, arguments, action)


async def checkout_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Check out the caller's awaiting reservation, creating a borrow record."""

    def action(params: ReservationActionInput) -> dict[str, Any]:
        record = get_lifecycle_manager().checkout(
            params.auth_user.profile_id, params.reservation_id
        )
        message = (
            f"Reservation {params.reservation_id} checked out. "
            f"Due date: {record.due_date.strftime('%B %d, %Y')}"
        )
        return {
            "content": [{"type": "text", "text": message}],
            "data": {"borrow_record": record.model_dump(mode="json")},
        }

    return _run_tool("checkout_reservation", ReservationActionInput, arguments, action)


async def list_reservations_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Staff listing of reservations with student, book and copy populated."""

    def action(params: StaffListInput) -> dict[str, Any]:
        page = get_query_service().list_for_staff(params.filters, _pagination(params.pagination))
        return _page_response(f"Found {page.meta.total_result} reservation(s)", page)

    return _run_tool("list_reservations", StaffListInput, arguments, action)


async def list_my_reservations_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """The caller's own reservations."""

    def action(params: MyListInput) -> dict[str, Any]:
        page = get_query_service().list_mine(
            params.auth_user.profile_id, params.filters, _pagination(params.pagination)
        )
        return _page_response(f"You have {page.meta.total_result} matching reservation(s)", page)

    return _run_tool("list_my_reservations", MyListInput, arguments, action)


async def get_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    def action(params: ReservationLookupInput) -> dict[str, Any]:
        reservation = get_query_service().get_by_id(params.reservation_id)
        return {
            "content": [{"type": "text", "text": f"Reservation {reservation.id}"}],
            "data": reservation.model_dump(mode="json", by_alias=True),
        }

    return _run_tool("get_reservation", ReservationLookupInput, arguments, action)


async def get_my_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    def action(params: ReservationLookupInput) -> dict[str, Any]:
        if params.auth_user is None:
            raise BadRequestError("auth_user is required")
        reservation = get_query_service().get_mine_by_id(
            params.auth_user.profile_id, params.reservation_id
        )
        return {
            "content": [{"type": "text", "text": f"Reservation {reservation.id}"}],
            "data": reservation.model_dump(mode="json", by_alias=True),
        }

    return _run_tool("get_my_reservation", ReservationLookupInput, arguments, action)


# =============================================================================
# TOOL REGISTRATION
# =============================================================================


def mcp_entrypoint(
    tool_name: str,
    handler: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
    schema: type[BaseModel],
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """
    Wrap ``handler`` in a function whose signature lists the fields of ``schema``.

    FastMCP derives the advertised input schema from the registered function's
    signature, so clients send ``auth_user``, ``reservation_id`` etc. as
    top-level arguments. The handler still receives them as one dict.
    """
    parameters = []
    annotations: dict[str, Any] = {}
    for name, field in schema.model_fields.items():
        default = (
            inspect.Parameter.empty
            if field.is_required()
            else field.get_default(call_default_factory=True)
        )
        parameters.append(
            inspect.Parameter(
                name, inspect.Parameter.KEYWORD_ONLY, default=default, annotation=field.annotation
            )
        )
        annotations[name] = field.annotation

    async def entrypoint(**arguments: Any) -> dict[str, Any]:
        return await handler(arguments)

    entrypoint.__name__ = tool_name
    entrypoint.__qualname__ = tool_name
    entrypoint.__doc__ = handler.__doc__
    entrypoint.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
        parameters, return_annotation=dict[str, Any]
    )
    entrypoint.__annotations__ = {**annotations, "return": dict[str, Any]}
    return entrypoint


cancel_reservation = {
    "name": "cancel_reservation",
    "description": (
        "Cancel one of your awaiting reservations. The reserved copy becomes "
        "available again. Fails with 403 if the reservation is no longer awaiting."
    ),
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": cancel_reservation_handler,
    "entrypoint": mcp_entrypoint(
        "cancel_reservation", cancel_reservation_handler, ReservationActionInput
    ),
}

checkout_reservation = {
    "name": "checkout_reservation",
    "description": (
        "Check out one of your awaiting reservations. Marks it fulfilled, marks the "
        "copy checked out and opens a loan due after the approved borrow period."
    ),
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": checkout_reservation_handler,
    "entrypoint": mcp_entrypoint(
        "checkout_reservation", checkout_reservation_handler, ReservationActionInput
    ),
}

list_reservations = {
    "name": "list_reservations",
    "description": (
        "Staff view of reservations. Filter by student roll, status, or look one "
        "up by its secret. Results include student, book and copy details."
    ),
    "inputSchema": StaffListInput.model_json_schema(),
    "handler": list_reservations_handler,
    "entrypoint": mcp_entrypoint(
        "list_reservations", list_reservations_handler, StaffListInput
    ),
}

list_my_reservations = {
    "name": "list_my_reservations",
    "description": "List your own reservations, optionally filtered by status.",
    "inputSchema": MyListInput.model_json_schema(),
    "handler": list_my_reservations_handler,
    "entrypoint": mcp_entrypoint(
        "list_my_reservations", list_my_reservations_handler, MyListInput
    ),
}

get_reservation = {
    "name": "get_reservation",
    "description": "Staff lookup of a single reservation by id.",
    "inputSchema": ReservationLookupInput.model_json_schema(),
    "handler": get_reservation_handler,
    "entrypoint": mcp_entrypoint(
        "get_reservation", get_reservation_handler, ReservationLookupInput
    ),
}

get_my_reservation = {
    "name": "get_my_reservation",
    "description": "Look up one of your own reservations by id.",
    "inputSchema": ReservationLookupInput.model_json_schema(),
    "handler": get_my_reservation_handler,
    "entrypoint": mcp_entrypoint(
        "get_my_reservation", get_my_reservation_handler, ReservationLookupInput
    ),
}
