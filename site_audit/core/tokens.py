"""
Token storage for audit executions.

A ``TokenBag`` is a nested, string keyed container. Policies read tokens for
message interpolation and expressions, audits write tokens to describe what
they found.
"""

from typing import Any, Dict, Iterator, Mapping, Optional


class TokenBag:
    """Nested string-keyed store with dotted-path access."""

    SEPARATOR = "."

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = {}
        if values:
            self.add(values)

    def get(self, name: str, default: Any = None) -> Any:
        """Get a value by name. ``a.b.c`` walks into nested bags and dicts."""
        if name in self._values:
            return self._values[name]

        node: Any = self
        for part in name.split(self.SEPARATOR):
            if isinstance(node, TokenBag):
                if part not in node._values:
                    return default
                node = node._values[part]
            elif isinstance(node, Mapping):
                if part not in node:
                    return default
                node = node[part]
            else:
                return default
        return node

    def set(self, name: str, value: Any) -> "TokenBag":
        """Set a value. Intermediate bags are created for dotted names."""
        head, sep, rest = name.partition(self.SEPARATOR)
        if not sep:
            self._values[name] = value
            return self

        child = self._values.get(head)
        if isinstance(child, Mapping) and not isinstance(child, TokenBag):
            child = TokenBag(child)
        elif not isinstance(child, TokenBag):
            child = TokenBag()
        child.set(rest, value)
        self._values[head] = child
        return self

    def has(self, name: str) -> bool:
        marker = object()
        return self.get(name, marker) is not marker

    def remove(self, name: str) -> None:
        self._values.pop(name, None)

    def add(self, values: Mapping[str, Any]) -> "TokenBag":
        """Merge a mapping into the top level of this bag."""
        for key, value in values.items():
            self._values[str(key)] = value
        return self

    def all(self) -> Dict[str, Any]:
        """Top level values, nested bags included as-is."""
        return dict(self._values)

    def export(self) -> Dict[str, Any]:
        """Export the whole tree as plain nested dicts."""
        return {key: _export_value(value) for key, value in self._values.items()}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"TokenBag({self._values!r})"


def _export_value(value: Any) -> Any:
    if isinstance(value, TokenBag):
        return value.export()
    if isinstance(value, Mapping):
        return {str(k): _export_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_export_value(v) for v in value]
    return value
