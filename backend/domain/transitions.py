"""
Order status state machine.

The adjacency table is a read-only constant; services consult it through the
helpers below instead of mutating shared configuration.
"""
from types import MappingProxyType
from typing import Iterable, Optional, Tuple

from domain.enums import OrderStatus

ALLOWED_TRANSITIONS = MappingProxyType({
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.PROCESSING}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
})

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Entering any of these requires a VERIFIED payment
PAYMENT_GATED_STATUSES = frozenset({
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.COMPLETED,
})

# Statuses from which a paid order may be cancelled with a refund
REFUNDABLE_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.PROCESSING})


def allowed_targets(status: OrderStatus) -> frozenset:
    return ALLOWED_TRANSITIONS[OrderStatus(status)]


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return OrderStatus(to_status) in allowed_targets(from_status)


def requires_verified_payment(to_status: OrderStatus) -> bool:
    return OrderStatus(to_status) in PAYMENT_GATED_STATUSES


def is_refund_cancellation(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return (
        OrderStatus(from_status) in REFUNDABLE_STATUSES
        and OrderStatus(to_status) == OrderStatus.CANCELLED
    )


def is_valid_walk(
    steps: Iterable[Tuple[Optional[str], str]],
    current: Optional[str] = None,
) -> bool:
    """
    Check that (from, to) pairs, in commit order, retrace the state machine.

    The first step must be (None, PENDING). Each following step must start
    where the previous ended and be either a table transition or a paid-order
    cancellation. If ``current`` is given the walk must end there.
    """
    position: Optional[OrderStatus] = None
    for index, (from_status, to_status) in enumerate(steps):
        if index == 0:
            if from_status is not None or OrderStatus(to_status) != OrderStatus.PENDING:
                return False
            position = OrderStatus.PENDING
            continue
        if from_status is None or OrderStatus(from_status) != position:
            return False
        if not (
            can_transition(from_status, to_status)
            or is_refund_cancellation(from_status, to_status)
        ):
            return False
        position = OrderStatus(to_status)

    if position is None:
        return False
    return current is None or position == OrderStatus(current)
