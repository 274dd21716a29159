from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from services.matrix.api.errors import MatrixBinaryDataError, MatrixParameterError

_REQUIRED = object()


@dataclass
class BinaryData:
    """
    Binary attachment handed over by the host workflow runtime.

    `data` is kept base64-encoded, the way the host stores it; call
    `content()` to obtain the raw bytes for upload.
    """

    data: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BinaryData":
        return cls(
            data=payload.get("data") or "",
            file_name=payload.get("fileName") or payload.get("file_name"),
            mime_type=payload.get("mimeType") or payload.get("mime_type"),
        )

    @classmethod
    def from_bytes(
        cls,
        raw: bytes,
        *,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> "BinaryData":
        return cls(
            data=base64.b64encode(raw).decode("ascii"),
            file_name=file_name,
            mime_type=mime_type,
        )

    def content(self) -> bytes:
        return base64.b64decode(self.data)


@dataclass
class WorkflowItem:
    """One input item: JSON payload plus optional named binary properties."""

    json: Dict[str, Any] = field(default_factory=dict)
    binary: Dict[str, BinaryData] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WorkflowItem":
        binary = {
            name: value if isinstance(value, BinaryData) else BinaryData.from_dict(value)
            for name, value in (payload.get("binary") or {}).items()
        }
        return cls(json=dict(payload.get("json") or {}), binary=binary)

    def get_binary(self, property_name: str) -> BinaryData:
        if property_name not in self.binary:
            raise MatrixBinaryDataError(
                f'No binary data property "{property_name}" exists on item!'
            )
        return self.binary[property_name]


class NodeParameters:
    """
    Per-item parameter accessor.

    Values come from the host runtime's parameter UI; a missing required
    parameter raises MatrixParameterError.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, name: str, default: Any = _REQUIRED) -> Any:
        if name in self._values:
            return self._values[name]
        if default is _REQUIRED:
            raise MatrixParameterError(f'Could not get parameter "{name}"')
        return default

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __repr__(self) -> str:
        return f"NodeParameters({sorted(self._values)})"
