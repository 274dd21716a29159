"""
Matrix operation dispatcher.

Maps a (resource, operation) pair selected by the user onto exactly one
Matrix client-server API call (two for media uploads) and returns the raw or
lightly reshaped JSON response.
"""

from __future__ import annotations

import uuid
from typing import Any, Awaitable, Callable, Dict, List, Tuple
from urllib.parse import quote

from services.matrix.api.client import MatrixApiClient
from services.matrix.api.errors import MatrixNotImplemented
from services.matrix.models.item import NodeParameters, WorkflowItem
from shared.logging.logger import get_logger

log = get_logger("matrix.dispatch")

Handler = Callable[[MatrixApiClient, WorkflowItem, NodeParameters], Awaitable[Any]]

OPERATIONS: Dict[Tuple[str, str], Handler] = {}

HTML_FORMAT = "org.matrix.custom.html"
MEDIA_ACCEPT = "application/json,text/*;q=0.99"


def operation(resource: str, name: str) -> Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        OPERATIONS[(resource, name)] = handler
        return handler

    return register


def supported_operations() -> List[Tuple[str, str]]:
    return sorted(OPERATIONS)


def _segment(value: Any) -> str:
    # Room aliases carry '#', which would otherwise start a URL fragment.
    return quote(str(value), safe="")


def _new_txn_id() -> str:
    return str(uuid.uuid4())


async def handle_matrix_call(
    client: MatrixApiClient,
    item: WorkflowItem,
    params: NodeParameters,
    resource: str,
    operation_name: str,
) -> Any:
    handler = OPERATIONS.get((resource, operation_name))
    if handler is None:
        log.warning(f"No handler for resource={resource} operation={operation_name}")
        raise MatrixNotImplemented()

    log.debug(f"Dispatching {resource}/{operation_name}")
    return await handler(client, item, params)


# ------------------------------------------------------------------ #
# account
# ------------------------------------------------------------------ #

@operation("account", "me")
async def account_me(client, item, params):
    return await client.request("GET", "/account/whoami")


# ------------------------------------------------------------------ #
# room
# ------------------------------------------------------------------ #

@operation("room", "create")
async def room_create(client, item, params):
    body: Dict[str, Any] = {
        "name": params.get("roomName"),
        "preset": params.get("preset"),
    }
    room_alias = params.get("roomAlias", "")
    if room_alias:
        body["room_alias_name"] = room_alias
    return await client.request("POST", "/createRoom", body)


@operation("room", "join")
async def room_join(client, item, params):
    room = _segment(params.get("roomIdOrAlias"))
    return await client.request("POST", f"/rooms/{room}/join")


@operation("room", "leave")
async def room_leave(client, item, params):
    room = _segment(params.get("roomId"))
    return await client.request("POST", f"/rooms/{room}/leave")


@operation("room", "invite")
async def room_invite(client, item, params):
    room = _segment(params.get("roomId"))
    body = {"user_id": params.get("userId")}
    return await client.request("POST", f"/rooms/{room}/invite", body)


@operation("room", "kick")
async def room_kick(client, item, params):
    room = _segment(params.get("roomId"))
    body = {
        "user_id": params.get("userId"),
        "reason": params.get("reason", ""),
    }
    return await client.request("POST", f"/rooms/{room}/kick", body)


# ------------------------------------------------------------------ #
# message
# ------------------------------------------------------------------ #

@operation("message", "create")
async def message_create(client, item, params):
    room = _segment(params.get("roomId"))
    text = params.get("text")
    message_format = params.get("messageFormat", "plain")

    body: Dict[str, Any] = {
        "msgtype": params.get("messageType", "m.text"),
        "body": text,
    }
    if message_format == HTML_FORMAT:
        body["format"] = HTML_FORMAT
        body["formatted_body"] = text
        body["body"] = params.get("fallbackText", "") or text

    return await client.request(
        "PUT",
        f"/rooms/{room}/send/m.room.message/{_new_txn_id()}",
        body,
    )


@operation("message", "getAll")
async def message_get_all(client, item, params):
    """
    Read room history newest-first.

    With returnAll the `end` cursor of each page feeds the next request
    until the homeserver hands back an empty chunk.
    """
    room = _segment(params.get("roomId"))
    resource = f"/rooms/{room}/messages"
    other_options = params.get("otherOptions", {}) or {}
    results: List[Dict[str, Any]] = []

    # dir=f returns nothing without a previous token, so always walk backwards.
    if params.get("returnAll", False):
        cursor = None
        pages = 0
        while True:
            qs: Dict[str, Any] = {"dir": "b", "from": cursor}
            if other_options.get("filter"):
                qs["filter"] = other_options["filter"]

            response = await client.request("GET", resource, None, qs)
            chunk = response.get("chunk") or []
            results.extend(chunk)
            pages += 1

            if not chunk:
                break

            cursor = response.get("end")
            if cursor is None:
                log.debug(f"No end cursor after page {pages}; stopping")
                break

        log.debug(f"Fetched {len(results)} events from {pages} page(s)")
        return results

    qs = {"dir": "b", "limit": params.get("limit", 100)}
    if other_options.get("filter"):
        qs["filter"] = other_options["filter"]

    response = await client.request("GET", resource, None, qs)
    results.extend(response.get("chunk") or [])
    return results


# ------------------------------------------------------------------ #
# event
# ------------------------------------------------------------------ #

@operation("event", "get")
async def event_get(client, item, params):
    room = _segment(params.get("roomId"))
    event = _segment(params.get("eventId"))
    return await client.request("GET", f"/rooms/{room}/event/{event}")


# ------------------------------------------------------------------ #
# media
# ------------------------------------------------------------------ #

@operation("media", "upload")
async def media_upload(client, item, params):
    room = _segment(params.get("roomId"))
    media_type = params.get("mediaType")
    binary = item.get_binary(params.get("binaryPropertyName", "data"))

    headers = {
        "Content-Type": binary.mime_type or "application/octet-stream",
        "accept": MEDIA_ACCEPT,
    }
    upload = await client.request(
        "POST",
        "/upload",
        binary.content(),
        {"filename": binary.file_name},
        headers,
        override_prefix="media",
        json=False,
    )
    log.info(f"Uploaded {binary.file_name!r} as {upload.get('content_uri')}")

    body = {
        "msgtype": f"m.{media_type}",
        "body": binary.file_name,
        "url": upload.get("content_uri"),
    }
    return await client.request(
        "PUT",
        f"/rooms/{room}/send/m.room.message/{_new_txn_id()}",
        body,
    )


# ------------------------------------------------------------------ #
# roomMember
# ------------------------------------------------------------------ #

@operation("roomMember", "getAll")
async def room_member_get_all(client, item, params):
    room = _segment(params.get("roomId"))
    filters = params.get("filters", {}) or {}
    qs = {
        "membership": filters.get("membership") or "",
        "not_membership": filters.get("notMembership") or "",
    }
    response = await client.request("GET", f"/rooms/{room}/members", None, qs)
    return response.get("chunk")
