"""Role hierarchy: who may invite whom, and which store they may act on."""

from uuid import UUID

from darkhorse.core.auth.types import UserRole
from darkhorse.core.exceptions import ForbiddenError, ValidationError

INVITE_HIERARCHY: dict[UserRole, frozenset[UserRole]] = {
    UserRole.SUPER_ADMIN: frozenset({UserRole.STORE_ADMIN}),
    UserRole.STORE_ADMIN: frozenset({UserRole.DIRECTOR}),
    UserRole.DIRECTOR: frozenset({UserRole.MANAGER}),
    UserRole.MANAGER: frozenset(
        {UserRole.RECEIVER, UserRole.PICKER, UserRole.PACKER, UserRole.SHIPPER}
    ),
    UserRole.RECEIVER: frozenset(),
    UserRole.PICKER: frozenset(),
    UserRole.PACKER: frozenset(),
    UserRole.SHIPPER: frozenset(),
    UserRole.USER: frozenset(),
}


def can_invite(acting_role: UserRole, target_role: UserRole) -> bool:
    """Return True if ``acting_role`` may invite users with ``target_role``."""
    return target_role in INVITE_HIERARCHY.get(acting_role, frozenset())


def ensure_can_invite(acting_role: UserRole, target_role: UserRole) -> None:
    """Raise ForbiddenError unless the hierarchy allows the invitation."""
    if not can_invite(acting_role, target_role):
        raise ForbiddenError(
            f"{acting_role.value} cannot invite users with role {target_role.value}"
        )


def resolve_store_scope(
    actor_role: UserRole,
    actor_store_id: UUID | None,
    requested_store_id: UUID | None,
) -> UUID:
    """Work out which store an invitation or store operation targets.

    A SUPER_ADMIN works across stores and must name one. Everyone else is
    pinned to their own store: a request for another store is forbidden,
    and an omitted store defaults to theirs.

    Returns:
        The store id to act on.

    Raises:
        ValidationError: If no store can be determined.
        ForbiddenError: If a store-scoped actor targets another store.
    """
    if actor_role == UserRole.SUPER_ADMIN:
        if requested_store_id is None:
            raise ValidationError("Store ID is required", {"field": "storeId"})
        return requested_store_id

    if actor_store_id is None:
        raise ValidationError("User is not associated with any store")

    if requested_store_id is not None and requested_store_id != actor_store_id:
        raise ForbiddenError("Cannot perform operations on other stores")

    return actor_store_id
