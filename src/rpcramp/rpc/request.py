"""JSON-RPC request payloads and template loading."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rpcramp._internal.errors import RequestFileError, RequestParseError
from rpcramp._internal.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger("rpc.request")


@dataclass(frozen=True)
class JsonRpcRequest:
    """An immutable JSON-RPC request descriptor.

    Attributes:
        id: Numeric request identifier.
        jsonrpc: Protocol version string, usually ``"2.0"``.
        method: Remote method name.
        params: Ordered positional parameters (arbitrary JSON values).
    """

    id: int
    jsonrpc: str
    method: str
    params: tuple[Any, ...] = ()

    @classmethod
    def from_dict(cls, data: object) -> JsonRpcRequest:
        """Build a request from a decoded JSON object.

        Args:
            data: The decoded JSON value.

        Returns:
            The parsed request.

        Raises:
            RequestParseError: If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            msg = f"request must be a JSON object, got {type(data).__name__}"
            raise RequestParseError(msg)

        missing = [key for key in ("id", "jsonrpc", "method", "params") if key not in data]
        if missing:
            msg = f"request is missing field(s): {', '.join(missing)}"
            raise RequestParseError(msg)

        request_id = data["id"]
        # bool is an int subclass; JSON true/false is not a valid id here
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            msg = f"'id' must be an integer, got {request_id!r}"
            raise RequestParseError(msg)
        for key in ("jsonrpc", "method"):
            if not isinstance(data[key], str):
                msg = f"'{key}' must be a string, got {data[key]!r}"
                raise RequestParseError(msg)
        if not isinstance(data["params"], list):
            msg = f"'params' must be an array, got {data['params']!r}"
            raise RequestParseError(msg)

        return cls(
            id=request_id,
            jsonrpc=data["jsonrpc"],
            method=data["method"],
            params=tuple(data["params"]),
        )

    @classmethod
    def from_json(cls, text: str) -> JsonRpcRequest:
        """Parse a request from JSON text.

        Raises:
            RequestParseError: If the text is not valid JSON or not a request.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"invalid JSON: {exc}"
            raise RequestParseError(msg) from exc
        return cls.from_dict(data)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serialisable wire payload."""
        return {
            "id": self.id,
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": list(self.params),
        }


def load_request_file(path: Path) -> JsonRpcRequest:
    """Read the static request template from disk.

    Args:
        path: Path to a JSON file holding one request object.

    Returns:
        The parsed template.

    Raises:
        RequestFileError: If the file cannot be read or does not hold a
            valid request.
    """
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read request file {path}: {exc}"
        raise RequestFileError(msg) from exc

    try:
        request = JsonRpcRequest.from_json(contents)
    except RequestParseError as exc:
        msg = f"Invalid request file {path}: {exc}"
        raise RequestFileError(msg) from exc

    logger.debug("Read JSON-RPC request from file: %s", request)
    return request
