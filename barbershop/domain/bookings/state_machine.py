"""
Booking status state machine

The transition table is the single source of truth for who may move a booking
from one status to another. Route handlers never check roles for status changes
themselves; they call authorize_transition().
"""

from typing import Optional

from ...errors import ForbiddenError, InvalidArgumentError, InvalidTransitionError
from ...shared.constants import ADMIN, BARBER, CUSTOMER

PENDING = "pending"
CONFIRMED = "confirmed"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no_show"

BOOKING_STATUSES = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW)

# Statuses that still occupy the barber's time slot
ACTIVE_STATUSES = frozenset({PENDING, CONFIRMED, IN_PROGRESS})
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED, NO_SHOW})
RESCHEDULABLE_STATUSES = frozenset({PENDING, CONFIRMED})

STAFF = frozenset({BARBER, ADMIN})
EVERYONE = frozenset({CUSTOMER, BARBER, ADMIN})

TRANSITIONS: dict[tuple[str, str], frozenset] = {
    (PENDING, CONFIRMED): STAFF,
    (PENDING, CANCELLED): EVERYONE,
    (CONFIRMED, IN_PROGRESS): STAFF,
    (CONFIRMED, CANCELLED): EVERYONE,
    (IN_PROGRESS, COMPLETED): STAFF,
    **{(status, NO_SHOW): STAFF for status in ACTIVE_STATUSES},
}

# Timestamp column stamped when a booking enters a status
STATUS_TIMESTAMPS = {
    CONFIRMED: "confirmed_at",
    IN_PROGRESS: "started_at",
    COMPLETED: "completed_at",
    CANCELLED: "cancelled_at",
}


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def resolve_actor_role(booking, actor) -> Optional[str]:
    """
    The role an actor plays for a specific booking, or None if they have no stake in it.

    An admin is always admin. A user whose barber profile runs the booking acts as
    barber, and the booking's customer acts as customer.
    """
    if actor.user_type == ADMIN:
        return ADMIN
    barber = getattr(booking, "barber", None)
    if barber is not None and barber.user_id == actor.id:
        return BARBER
    if booking.customer_id is not None and booking.customer_id == actor.id:
        return CUSTOMER
    return None


def check_ownership(booking, actor) -> str:
    """Return the actor's role for this booking or raise Forbidden"""
    role = resolve_actor_role(booking, actor)
    if role is None:
        raise ForbiddenError("You do not have access to this booking")
    return role


def authorize_transition(booking, actor, target: str) -> str:
    """
    Decide whether actor may move booking to target.

    Order: unknown status value, then ownership, then the transition table,
    then the roles allowed for that transition.

    Returns:
        The actor's role for the booking

    Raises:
        InvalidArgumentError: target is not a booking status
        ForbiddenError: actor does not own the booking or their role may not make this move
        InvalidTransitionError: the move is not in the table
    """
    if target not in BOOKING_STATUSES:
        raise InvalidArgumentError(
            f"Invalid status '{target}'. Must be one of: {', '.join(BOOKING_STATUSES)}"
        )

    role = check_ownership(booking, actor)

    allowed_roles = TRANSITIONS.get((booking.status, target))
    if allowed_roles is None:
        raise InvalidTransitionError(f"Cannot change booking status from {booking.status} to {target}")

    if role not in allowed_roles:
        raise ForbiddenError(f"A {role} cannot change booking status from {booking.status} to {target}")

    return role


def allowed_transitions(booking, actor) -> list[str]:
    """Statuses this actor may move the booking to right now"""
    role = resolve_actor_role(booking, actor)
    if role is None:
        return []
    return [
        target
        for (source, target), roles in TRANSITIONS.items()
        if source == booking.status and role in roles
    ]
