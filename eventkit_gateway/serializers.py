"""
JSON output envelope.

Every invocation prints exactly one JSON object on stdout: either the success
payload of the operation or {"error": message}. Optional fields are present
as null, never omitted.
"""

import json
import sys
from typing import Any, Dict, TextIO, Union

from eventkit_gateway.core.models import GatewayResult


def render(payload: Union[GatewayResult, Dict[str, Any]]) -> Dict[str, Any]:
    """Turn a result object (or an already-built dict) into the output dict."""
    if isinstance(payload, GatewayResult):
        return payload.to_dict()
    if isinstance(payload, dict):
        return payload
    raise TypeError(f"Cannot serialize {type(payload).__name__} as gateway output")


def emit_json(
    payload: Union[GatewayResult, Dict[str, Any]],
    pretty: bool = False,
    stream: TextIO = None
) -> None:
    """Emit one JSON object, compact by default or indented with pretty=True."""
    stream = stream or sys.stdout
    data = render(payload)
    if pretty:
        print(json.dumps(data, indent=2, ensure_ascii=False, default=str), file=stream)
    else:
        print(json.dumps(data, separators=(",", ":"), ensure_ascii=False, default=str), file=stream)


def emit_error(message: str, pretty: bool = False, stream: TextIO = None) -> None:
    emit_json({"error": message}, pretty=pretty, stream=stream)
