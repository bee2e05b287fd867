# diy_search/parsers/shapes.py

"""Strict decoders for the known upstream payload shapes.

Each retailer declares its candidate shapes as :class:`Shape` values and
tries them in priority order; only when every strict decode fails does a
parser fall back to the heuristic scan in :mod:`diy_search.parsers.tree`.
"""

import json
from dataclasses import dataclass
from typing import Any


class ShapeMismatch(ValueError):
    """The payload does not have the structure a shape expects."""


def load_json(payload: Any) -> Any:
    """Decode *payload* if it is text; pass decoded trees through."""
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except ValueError as exc:
            raise ShapeMismatch(f"not JSON: {exc}") from exc
    return payload


def dig(data: Any, path: tuple[str, ...]) -> Any:
    """Follow *path* through nested dicts or raise :class:`ShapeMismatch`."""
    node = data
    for key in path:
        if not isinstance(node, dict) or key not in node:
            raise ShapeMismatch(f"missing '{'.'.join(path)}'")
        node = node[key]
    return node


@dataclass(frozen=True)
class Shape:
    """A named path to a list of raw product objects."""

    name: str
    path: tuple[str, ...]

    def decode(self, data: Any) -> list[dict[str, Any]]:
        """Return the product dicts at :attr:`path`."""
        value = dig(data, self.path)
        if not isinstance(value, list):
            raise ShapeMismatch(f"'{self.name}' is not a list")
        return [item for item in value if isinstance(item, dict)]


ENVELOPE = Shape("envelope", ("response", "docs"))


def extract_json_block(text: str) -> Any:
    """Decode the first balanced ``{...}`` object embedded in *text*.

    Script-style responses wrap their JSON in other tokens.  Braces inside
    string literals are ignored while balancing.  If the balanced block
    does not decode, the widest ``{`` .. ``}`` slice is tried instead.
    """
    start = text.find("{")
    if start == -1:
        raise ShapeMismatch("no JSON object in payload")

    depth = 0
    in_string = False
    escaped = False
    end = -1
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index
                break

    candidates: list[str] = []
    if end != -1:
        candidates.append(text[start:end + 1])
    last = text.rfind("}")
    if last > start:
        candidates.append(text[start:last + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    raise ShapeMismatch("embedded JSON does not decode")
