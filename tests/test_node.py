import asyncio

import pytest

from services.matrix.api.errors import MatrixCredentialsInvalid
from services.matrix.models.item import BinaryData, WorkflowItem
from services.matrix.node import MatrixNode

ROOM = "!abc:example.org"


def test_list_results_are_flattened_and_objects_appended(client, homeserver):
    homeserver.queue(200, {"chunk": [{"state_key": "@a:x"}, {"state_key": "@b:x"}]})
    homeserver.queue(200, {"user_id": "@bot:x"})
    node = MatrixNode(client)

    results = asyncio.run(
        node.execute(
            [{"json": {}}, {"json": {}}],
            [
                {"resource": "roomMember", "operation": "getAll", "roomId": ROOM},
                {"resource": "account", "operation": "me"},
            ],
        )
    )

    assert results == [{"state_key": "@a:x"}, {"state_key": "@b:x"}, {"user_id": "@bot:x"}]


def test_errors_propagate_by_default(client, homeserver):
    homeserver.queue(401, {"errcode": "M_UNKNOWN_TOKEN", "error": "nope"})
    node = MatrixNode(client)

    with pytest.raises(MatrixCredentialsInvalid):
        asyncio.run(node.execute([{}], [{"resource": "account", "operation": "me"}]))


def test_continue_on_fail_records_error_and_keeps_going(client, homeserver):
    homeserver.queue(200, {"user_id": "@bot:x"})
    node = MatrixNode(client, continue_on_fail=True)

    results = asyncio.run(
        node.execute(
            [{}, {}],
            [
                {"resource": "room", "operation": "archive"},
                {"resource": "account", "operation": "me"},
            ],
        )
    )

    assert results == [{"error": "Not implemented yet"}, {"user_id": "@bot:x"}]


def test_item_and_parameter_counts_must_match(client):
    node = MatrixNode(client)

    with pytest.raises(ValueError):
        asyncio.run(node.execute([{}, {}], [{"resource": "account", "operation": "me"}]))


def test_continue_on_fail_covers_bad_media_response(client, homeserver):
    homeserver.queue(200, text="")
    node = MatrixNode(client, continue_on_fail=True)
    item = WorkflowItem(binary={"data": BinaryData.from_bytes(b"x", file_name="a.txt")})

    results = asyncio.run(
        node.execute(
            [item],
            [
                {
                    "resource": "media",
                    "operation": "upload",
                    "roomId": ROOM,
                    "mediaType": "file",
                    "binaryPropertyName": "data",
                }
            ],
        )
    )

    assert len(results) == 1
    assert results[0]["error"].startswith("Matrix error response [200]: media response")
