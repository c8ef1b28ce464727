"""
Decoding of JSON documents printed by remote commands.
"""

import json
from typing import Any

from ..core.exceptions import RemoteDecodeError


def decode_json(output: str, source: str = "remote command") -> Any:
    """
    Decode the whole of ``output`` as exactly one JSON document.

    A JSON ``null`` decodes to None. Empty or malformed output raises
    RemoteDecodeError so it is never mistaken for an empty result.
    """
    text = output.strip()
    if not text:
        raise RemoteDecodeError(f"Empty output from {source}, expected JSON", output)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        excerpt = text if len(text) <= 200 else text[:200] + "..."
        raise RemoteDecodeError(
            f"Cannot parse JSON output from {source}: {e.msg}: {excerpt}", output
        ) from e
