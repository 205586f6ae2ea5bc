"""
Header forwarding policy.

Decides which headers cross each direction of the proxy boundary. Framing
headers are always denied: their values describe the hop they arrived on and
become wrong once the message is re-framed by a new transport.
"""

from typing import FrozenSet, Iterable, Tuple

from origin_proxy.models.proxy import Direction, HeaderList

FRAMING_HEADERS: FrozenSet[str] = frozenset({
    "host",
    "content-length",
    "connection",
    "transfer-encoding",
})


class HeaderPolicy:
    """Name-based deny lists for request and response headers."""

    def __init__(self, request_deny: Iterable[str] = (), response_deny: Iterable[str] = ()):
        self._deny = {
            Direction.REQUEST: FRAMING_HEADERS | {name.strip().lower() for name in request_deny},
            Direction.RESPONSE: FRAMING_HEADERS | {name.strip().lower() for name in response_deny},
        }

    def denied(self, direction: Direction) -> FrozenSet[str]:
        return frozenset(self._deny[Direction(direction)])

    def should_forward(self, direction: Direction, header_name: str) -> bool:
        """True if ``header_name`` may cross the boundary in ``direction``."""
        return header_name.lower() not in self._deny[Direction(direction)]

    def filter(self, direction: Direction, headers: Iterable[Tuple[str, str]]) -> HeaderList:
        """Keep forwardable headers, preserving order, name case and duplicates."""
        return tuple(
            (name, value) for name, value in headers
            if self.should_forward(direction, name)
        )
