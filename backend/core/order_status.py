"""Order statuses and the legal transitions between them."""

from enum import Enum
from typing import Dict, FrozenSet


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


INITIAL_STATUS = OrderStatus.PLACED

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)
ACTIVE_STATUSES = frozenset(OrderStatus) - TERMINAL_STATUSES


def parse_status(value) -> OrderStatus:
    """OrderStatus for `value` (case-insensitive); ValueError if unknown."""
    if isinstance(value, OrderStatus):
        return value
    return OrderStatus(str(value or "").strip().upper())


def is_allowed(from_status, to_status) -> bool:
    try:
        src = parse_status(from_status)
        dst = parse_status(to_status)
    except ValueError:
        return False
    return dst in ALLOWED_TRANSITIONS[src]


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES
