"""
Quote status transition rules.

PENDING -> REVIEWING -> SENT -> [ARTWORK_PENDING -> ARTWORK_APPROVED | ARTWORK_DECLINED]
        -> APPROVED | DECLINED -> ARCHIVED

ARCHIVED is terminal and reachable from every other status. SENT -> SENT
and ARTWORK_PENDING -> ARTWORK_PENDING are resends.
"""

from typing import Dict, FrozenSet

from domain import QuoteStatus

from .errors import InvalidTransitionError

S = QuoteStatus

VALID_TRANSITIONS: Dict[QuoteStatus, FrozenSet[QuoteStatus]] = {
    S.PENDING: frozenset({S.REVIEWING, S.SENT, S.ARTWORK_PENDING, S.ARCHIVED}),
    S.REVIEWING: frozenset({S.PENDING, S.SENT, S.ARTWORK_PENDING, S.ARCHIVED}),
    S.SENT: frozenset({S.REVIEWING, S.SENT, S.ARTWORK_PENDING, S.APPROVED, S.DECLINED, S.ARCHIVED}),
    S.ARTWORK_PENDING: frozenset({S.ARTWORK_PENDING, S.ARTWORK_APPROVED, S.ARTWORK_DECLINED, S.ARCHIVED}),
    S.ARTWORK_APPROVED: frozenset({S.ARTWORK_PENDING, S.APPROVED, S.DECLINED, S.ARCHIVED}),
    S.ARTWORK_DECLINED: frozenset({S.ARTWORK_PENDING, S.ARCHIVED}),
    S.APPROVED: frozenset({S.ARCHIVED}),
    S.DECLINED: frozenset({S.REVIEWING, S.ARCHIVED}),
    S.ARCHIVED: frozenset(),
}

# Statuses only reachable through a dedicated operation (send quote/artwork)
SEND_ONLY_STATUSES = frozenset({S.SENT, S.ARTWORK_PENDING})

# Statuses only the customer sets, by answering an artwork link
CUSTOMER_ONLY_STATUSES = frozenset({S.ARTWORK_APPROVED, S.ARTWORK_DECLINED})

# Statuses from which a quote can be sent (or re-sent) to the customer
SENDABLE_STATUSES = frozenset({S.PENDING, S.REVIEWING, S.SENT})

# Statuses where sending artwork moves the quote to ARTWORK_PENDING
ARTWORK_SEND_ADVANCES = frozenset({
    S.PENDING, S.REVIEWING, S.SENT, S.ARTWORK_APPROVED, S.ARTWORK_DECLINED,
})

ARTWORK_STATUSES = frozenset({S.ARTWORK_PENDING, S.ARTWORK_APPROVED, S.ARTWORK_DECLINED})


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, frozenset())


def ensure_not_archived(current: QuoteStatus) -> None:
    if current == S.ARCHIVED:
        raise InvalidTransitionError(
            "Archived quotes cannot be modified",
            current_status=current.value,
        )


def ensure_transition(current: QuoteStatus, target: QuoteStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    ensure_not_archived(current)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change quote status from {current.value} to {target.value}",
            current_status=current.value,
            target_status=target.value,
        )
