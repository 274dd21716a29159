"""
Operator utility to run a single Matrix resource/operation pair.

Usage:
    python -m scripts.matrix_call account me
    python -m scripts.matrix_call message create --param roomId='!abc:example.org' --param text=hello
    python -m scripts.matrix_call media upload --param roomId='!abc:example.org' \
        --param mediaType=image --binary data=./cat.png

Values passed to --param stay strings, except for the typed parameters
(returnAll, limit, otherOptions, filters) which are decoded as JSON.

Credentials are read from MATRIX_HOMESERVER_URL / MATRIX_ACCESS_TOKEN
(a local .env file is honoured).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from runtime.version import as_string
from services.matrix.api.client import MatrixApiClient
from services.matrix.api.errors import MatrixError
from services.matrix.models.item import BinaryData, WorkflowItem
from services.matrix.node import MatrixNode
from shared.config.matrix import load_env_credentials, load_http_settings

TYPED_PARAMS = {"returnAll", "limit", "otherOptions", "filters"}


def _split_pair(raw: str, flag: str) -> Tuple[str, str]:
    if "=" not in raw:
        raise argparse.ArgumentTypeError(f"{flag} expects key=value, got {raw!r}")
    key, value = raw.split("=", 1)
    return key, value


def _decode_value(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return value


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one Matrix API operation")
    parser.add_argument("resource", help="account | room | message | event | media | roomMember")
    parser.add_argument("operation", help="e.g. me, create, getAll, upload")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Node parameter (repeatable)",
    )
    parser.add_argument(
        "--binary",
        action="append",
        default=[],
        metavar="PROPERTY=PATH",
        help="Attach a file as a named binary property (repeatable)",
    )
    parser.add_argument(
        "--continue-on-fail",
        action="store_true",
        help="Report errors as output instead of exiting non-zero",
    )
    parser.add_argument("--version", action="version", version=as_string())
    return parser.parse_args(argv)


def build_item(binary_args: List[str]) -> WorkflowItem:
    item = WorkflowItem()
    for raw in binary_args:
        name, path_str = _split_pair(raw, "--binary")
        path = Path(path_str)
        mime_type, _ = mimetypes.guess_type(path.name)
        item.binary[name] = BinaryData.from_bytes(
            path.read_bytes(),
            file_name=path.name,
            mime_type=mime_type or "application/octet-stream",
        )
    return item


def build_parameters(args: argparse.Namespace) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "resource": args.resource,
        "operation": args.operation,
    }
    for raw in args.param:
        key, value = _split_pair(raw, "--param")
        params[key] = _decode_value(value) if key in TYPED_PARAMS else value
    return params


async def run(args: argparse.Namespace) -> List[Dict[str, Any]]:
    credentials = load_env_credentials()
    settings = load_http_settings()

    async with MatrixApiClient(credentials, timeout=settings.timeout) as client:
        node = MatrixNode(client, continue_on_fail=args.continue_on_fail)
        return await node.execute([build_item(args.binary)], [build_parameters(args)])


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        results = asyncio.run(run(args))
    except (MatrixError, httpx.HTTPError, OSError) as e:
        print(f"[MATRIX ERROR] {e}", file=sys.stderr)
        return 1

    print(json.dumps(results, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
