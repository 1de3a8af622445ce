"""
SportConnect Backend — HTTP Toggle Store
========================================

What:  ToggleStore that delegates to a running SportConnect service.
How:   POSTs `{actor_id}` to the like/follow endpoint; the service runs the
       transaction (SqlToggleStore) and answers with the committed state.
       Error bodies are turned back into the matching SportConnectError so
       the reconciler's caller sees the same exceptions in-process and
       over the wire.
Who:   SportConnectClient.
"""

import logging

import httpx

from sportconnect.exceptions import (
    DatabaseError,
    NotFoundError,
    SportConnectError,
    TransactionConflictError,
    ValidationError,
)
from sportconnect.schemas.toggles import ToggleKind, ToggleOperation, ToggleResult
from sportconnect.services.store_base import ToggleStore

logger = logging.getLogger(__name__)


def toggle_path(operation: ToggleOperation) -> str:
    if operation.kind is ToggleKind.LIKE:
        return f"/api/posts/{operation.target_id}/like"
    return f"/api/users/{operation.target_id}/follow"


def error_from_response(response: httpx.Response) -> SportConnectError:
    """Rebuild the service's exception from its standard error body."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or response.reason_phrase or "Request failed"
    details = body.get("details")
    if not isinstance(details, dict):
        details = {}

    if response.status_code == 400:
        return ValidationError(message=message, field=details.get("field"), context=details)
    if response.status_code == 404:
        return NotFoundError(
            resource=details.get("resource", "resource"),
            resource_id=details.get("resource_id", ""),
        )
    if response.status_code == 409:
        return TransactionConflictError(message=message, context=details)
    return DatabaseError(
        message=message,
        context={"status_code": response.status_code, **details},
    )


class HttpToggleStore(ToggleStore):
    """
    Args:
        client: an httpx.AsyncClient whose base_url points at the service.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def apply_toggle(self, operation: ToggleOperation) -> ToggleResult:
        response = await self.client.post(
            toggle_path(operation), json={"actor_id": operation.actor_id}
        )
        if response.status_code >= 400:
            error = error_from_response(response)
            logger.warning(
                "Toggle %s rejected by service (%d): %s",
                ":".join(operation.key),
                response.status_code,
                error.message,
            )
            raise error

        body = response.json()
        return ToggleResult(
            operation=operation,
            is_member=body["is_member"],
            count=body["count"],
            counter_count=body.get("counter_count", 0),
        )
