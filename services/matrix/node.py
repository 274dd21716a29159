from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Union

import httpx

from services.matrix.api.client import MatrixApiClient
from services.matrix.api.errors import MatrixError
from services.matrix.dispatch import handle_matrix_call
from services.matrix.models.item import NodeParameters, WorkflowItem
from shared.logging.logger import get_logger

log = get_logger("matrix.node")

ItemInput = Union[WorkflowItem, Mapping[str, Any]]


class MatrixNode:
    """
    Runs the Matrix dispatcher once per input item.

    Items are processed sequentially. List responses (message history,
    room members) are flattened into the output; single objects are
    appended. With continue_on_fail a failing item yields {"error": ...}
    instead of aborting the run.
    """

    def __init__(self, client: MatrixApiClient, *, continue_on_fail: bool = False) -> None:
        self.client = client
        self.continue_on_fail = continue_on_fail

    async def execute(
        self,
        items: Sequence[ItemInput],
        parameters: Sequence[Mapping[str, Any]],
    ) -> List[Dict[str, Any]]:
        if len(items) != len(parameters):
            raise ValueError(
                f"Got {len(items)} item(s) but {len(parameters)} parameter set(s)"
            )

        results: List[Dict[str, Any]] = []

        for index, (raw_item, raw_params) in enumerate(zip(items, parameters)):
            item = (
                raw_item
                if isinstance(raw_item, WorkflowItem)
                else WorkflowItem.from_dict(raw_item)
            )
            params = NodeParameters(raw_params)

            try:
                resource = params.get("resource")
                operation = params.get("operation")
                response = await handle_matrix_call(
                    self.client, item, params, resource, operation
                )
            except (MatrixError, httpx.HTTPError) as e:
                if not self.continue_on_fail:
                    raise
                log.warning(f"Item {index} failed, continuing: {e}")
                results.append({"error": str(e)})
                continue

            if isinstance(response, list):
                results.extend(response)
            elif response is not None:
                results.append(response)

        log.info(f"Matrix node processed {len(items)} item(s) -> {len(results)} result(s)")
        return results
