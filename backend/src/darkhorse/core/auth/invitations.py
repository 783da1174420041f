"""Invitation issuance, validation and acceptance.

An invitation moves PENDING -> ACCEPTED or PENDING -> EXPIRED and never
back. Expiry is detected lazily: whoever looks at an invitation past its
window marks it EXPIRED before reporting the failure.

Issuing an invitation and emailing it are separate steps. The row is
committed first; a failed email is logged and can be retried with
``resend_invitation``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog

from darkhorse.core.auth.password import hash_password, validate_password_strength
from darkhorse.core.auth.repository import AuthRepository
from darkhorse.core.auth.roles import ensure_can_invite, resolve_store_scope
from darkhorse.core.auth.sessions import SessionManager
from darkhorse.core.auth.tokens import (
    INVITATION_EXPIRY_HOURS,
    generate_invitation_token,
    get_expiry,
    is_expired,
)
from darkhorse.core.auth.types import (
    AuthContext,
    Invitation,
    InvitationStatus,
    Session,
    SessionMetadata,
    TokenPair,
    User,
    UserRole,
)
from darkhorse.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from darkhorse.core.notifications import Notifier
from darkhorse.core.stores.repository import StoreRepository
from darkhorse.core.stores.types import Store

logger = structlog.get_logger()


@dataclass
class InvitationConfig:
    """Invitation settings."""

    frontend_url: str
    expire_hours: int = INVITATION_EXPIRY_HOURS

    def acceptance_link(self, token: str) -> str:
        """Build the link mailed to the invitee."""
        return f"{self.frontend_url.rstrip('/')}/accept-invitation?token={token}"


@dataclass
class InvitationDetails:
    """A valid invitation with the store and inviter it points at."""

    invitation: Invitation
    store: Store | None
    inviter: dict[str, Any] | None

    def to_dict(self) -> dict[str, Any]:
        """Wire format."""
        return {
            **self.invitation.public_dict(),
            "store": (
                {
                    "id": str(self.store.id),
                    "name": self.store.name,
                    "slug": self.store.slug,
                }
                if self.store
                else None
            ),
            "inviter": self.inviter,
        }


@dataclass
class AcceptedInvitation:
    """Outcome of accepting an invitation.

    ``session`` and ``tokens`` are None when the account was created but the
    follow-up login failed; the client should then call login.
    """

    user: User
    session: Session | None
    tokens: TokenPair | None


class InvitationManager:
    """Creates, validates and resolves invitation tokens."""

    def __init__(
        self,
        repo: AuthRepository,
        stores: StoreRepository,
        sessions: SessionManager,
        notifier: Notifier,
        config: InvitationConfig,
    ) -> None:
        """Initialize the invitation manager.

        Args:
            repo: Auth repository (users, invitations).
            stores: Store repository, to check the target store.
            sessions: Session manager, used to log invitees in on acceptance.
            notifier: Delivers invitation emails.
            config: Link base and expiry window.
        """
        self._repo = repo
        self._stores = stores
        self._sessions = sessions
        self._notifier = notifier
        self._config = config

    async def invite_store_admin(
        self,
        email: str,
        full_name: str | None,
        store_id: UUID,
        store_name: str | None,
        inviter: AuthContext,
    ) -> Invitation:
        """Invite the administrator of a store.

        Raises:
            ForbiddenError: If the inviter may not invite store admins.
            ConflictError: If the email already has an account or a live invitation.
            NotFoundError: If the store does not exist.
        """
        ensure_can_invite(inviter.role, UserRole.STORE_ADMIN)
        return await self._create_invitation(
            email=email,
            full_name=full_name,
            role=UserRole.STORE_ADMIN,
            store_id=store_id,
            warehouse_id=None,
            inviter=inviter,
            store_name=store_name,
        )

    async def invite_user(
        self,
        email: str,
        full_name: str | None,
        role: UserRole,
        store_id: UUID | None,
        warehouse_id: UUID | None,
        inviter: AuthContext,
    ) -> Invitation:
        """Invite a user one step down the role hierarchy.

        The store defaults to the inviter's own, and store-scoped inviters
        cannot target another store. The warehouse defaults to the inviter's.

        Raises:
            ForbiddenError: If the hierarchy or store scope forbids it.
            ValidationError: If no store can be resolved or the warehouse is
                not part of the store.
            ConflictError: If the email already has an account or a live invitation.
            NotFoundError: If the store does not exist.
        """
        ensure_can_invite(inviter.role, role)
        target_store_id = resolve_store_scope(inviter.role, inviter.store_id, store_id)

        warehouse_id = warehouse_id or inviter.warehouse_id
        if warehouse_id is not None:
            warehouses = await self._stores.list_store_warehouses(target_store_id)
            if warehouse_id not in {w.id for w in warehouses}:
                raise ValidationError(
                    "Warehouse does not belong to the store", {"field": "warehouseId"}
                )

        return await self._create_invitation(
            email=email,
            full_name=full_name,
            role=role,
            store_id=target_store_id,
            warehouse_id=warehouse_id,
            inviter=inviter,
            store_name=None,
        )

    async def validate_invitation(self, token: str) -> InvitationDetails:
        """Check a token and describe the invitation behind it.

        Raises:
            NotFoundError: If the token is unknown or no longer PENDING.
            ValidationError: If the invitation has expired (it is marked EXPIRED).
            ConflictError: If an account with the email exists by now.
        """
        invitation = await self._get_usable_invitation(token)
        store = await self._stores.get_store_by_id(invitation.store_id)
        inviter = await self._stores.get_user_summary(invitation.invited_by)
        return InvitationDetails(invitation=invitation, store=store, inviter=inviter)

    async def accept_invitation(
        self,
        token: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        metadata: SessionMetadata | None = None,
    ) -> AcceptedInvitation:
        """Create the invitee's account and log them in.

        Every validation check runs again here because time passes between
        validating and accepting. The invitation update and user insert are
        one transaction; the session is created afterwards and may fail
        without undoing the account.

        Raises:
            NotFoundError: If the token is unknown, used, or lost a concurrent accept.
            ValidationError: If the invitation expired or the password is weak.
            ConflictError: If an account with the email already exists.
        """
        invitation = await self._get_usable_invitation(token)
        validate_password_strength(password)

        user = await self._repo.accept_invitation(
            invitation_id=invitation.id,
            password_hash=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=phone,
            accepted_at=datetime.now(UTC),
        )
        logger.info(
            "invitation_accepted",
            invitation_id=str(invitation.id),
            user_id=str(user.id),
            role=user.role.value,
        )

        try:
            session, tokens = await self._sessions.create_session(user.id, user.email, metadata)
        except Exception as e:
            logger.error(
                "invitation_session_failed",
                user_id=str(user.id),
                error=str(e),
            )
            return AcceptedInvitation(user=user, session=None, tokens=None)

        return AcceptedInvitation(user=user, session=session, tokens=tokens)

    async def resend_invitation(self, invitation_id: UUID, actor: AuthContext) -> Invitation:
        """Email a live invitation again.

        Raises:
            NotFoundError: If the invitation does not exist or is not PENDING.
            ForbiddenError: If the actor is neither the inviter nor a SUPER_ADMIN.
            ValidationError: If the invitation has expired.
            UpstreamServiceError: If the email could not be delivered.
        """
        invitation = await self._repo.get_invitation_by_id(invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")

        if actor.role != UserRole.SUPER_ADMIN and invitation.invited_by != actor.user_id:
            raise ForbiddenError("Only the inviter can resend this invitation")

        if invitation.status != InvitationStatus.PENDING:
            raise NotFoundError("Invitation is no longer pending")

        if is_expired(invitation.expires_at):
            await self._repo.mark_invitation_expired(invitation.id)
            raise ValidationError("Invitation has expired")

        store = await self._stores.get_store_by_id(invitation.store_id)
        delivered = await self._notify(
            invitation,
            store_name=store.name if store else None,
            inviter_name=actor.full_name,
        )
        if not delivered:
            raise UpstreamServiceError("Invitation email could not be delivered")

        logger.info("invitation_resent", invitation_id=str(invitation.id))
        return invitation

    async def list_store_invitations(
        self, store_id: UUID, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """List a store's invitations, optionally filtered by status."""
        return await self._repo.list_store_invitations(store_id, status)

    async def _create_invitation(
        self,
        email: str,
        full_name: str | None,
        role: UserRole,
        store_id: UUID,
        warehouse_id: UUID | None,
        inviter: AuthContext,
        store_name: str | None,
    ) -> Invitation:
        email = email.strip().lower()

        if await self._repo.get_user_by_email(email):
            raise ConflictError("User with this email already exists")

        store = await self._stores.get_store_by_id(store_id)
        if store is None:
            raise NotFoundError("Store not found")

        now = datetime.now(UTC)
        await self._repo.expire_stale_invitations(email, now)
        if await self._repo.get_pending_invitation_by_email(email):
            raise ConflictError("A pending invitation already exists for this email")

        # Losing a concurrent insert race surfaces as ConflictError from the repo
        invitation = await self._repo.create_invitation(
            email=email,
            full_name=full_name,
            token=generate_invitation_token(),
            role=role,
            store_id=store.id,
            warehouse_id=warehouse_id,
            invited_by=inviter.user_id,
            expires_at=get_expiry(self._config.expire_hours, now),
        )
        logger.info(
            "invitation_created",
            invitation_id=str(invitation.id),
            store_id=str(store.id),
            role=role.value,
            invited_by=str(inviter.user_id),
        )

        await self._notify(
            invitation,
            store_name=store_name or store.name,
            inviter_name=inviter.full_name,
        )
        return invitation

    async def _get_usable_invitation(self, token: str) -> Invitation:
        invitation = await self._repo.get_invitation_by_token(token)
        if invitation is None or invitation.status != InvitationStatus.PENDING:
            raise NotFoundError("Invalid or already used invitation token")

        if is_expired(invitation.expires_at):
            await self._repo.mark_invitation_expired(invitation.id)
            logger.info("invitation_expired", invitation_id=str(invitation.id))
            raise ValidationError("Invitation has expired")

        if await self._repo.get_user_by_email(invitation.email):
            raise ConflictError("User with this email already exists")

        return invitation

    async def _notify(
        self,
        invitation: Invitation,
        store_name: str | None,
        inviter_name: str | None,
    ) -> bool:
        try:
            delivered = await self._notifier.send_invitation(
                to_email=invitation.email,
                invitation_link=self._config.acceptance_link(invitation.token),
                role=invitation.role.value,
                full_name=invitation.full_name,
                store_name=store_name,
                inviter_name=inviter_name,
                expires_in_hours=self._config.expire_hours,
            )
        except Exception as e:
            logger.error(
                "invitation_email_failed",
                invitation_id=str(invitation.id),
                error=str(e),
            )
            return False

        if not delivered:
            logger.warning("invitation_email_not_delivered", invitation_id=str(invitation.id))
        return delivered
