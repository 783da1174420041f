"""Notification protocol used by the invitation and store flows."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Notifier(Protocol):
    """Sends user-facing notifications.

    Methods return True on delivery and False on failure; callers decide
    whether a failure matters.
    """

    async def send_invitation(
        self,
        to_email: str,
        invitation_link: str,
        role: str,
        full_name: str | None = None,
        store_name: str | None = None,
        inviter_name: str | None = None,
        expires_in_hours: int = 72,
    ) -> bool:
        """Send an invitation with its acceptance link."""
        ...

    async def send_salla_connected(
        self,
        to_email: str,
        store_name: str,
        full_name: str | None = None,
    ) -> bool:
        """Tell a store owner their Salla store is connected."""
        ...
