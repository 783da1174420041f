"""Fixtures for API tests: the real app wired to in-memory services."""

from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from cryptography.fernet import Fernet
from darkhorse.core.auth.invitations import InvitationManager
from darkhorse.core.auth.jwt import TokenIssuer
from darkhorse.core.auth.password import hash_password
from darkhorse.core.auth.service import AuthService
from darkhorse.core.auth.sessions import SessionManager
from darkhorse.core.auth.types import User, UserRole, UserStatus
from darkhorse.core.crypto import SecretCipher
from darkhorse.core.stores.service import StoreService
from darkhorse.core.stores.types import SallaTokens
from darkhorse.entrypoints.api.app import app
from darkhorse.entrypoints.api.deps import (
    get_auth_service,
    get_invitation_manager,
    get_store_service,
)
from fastapi.testclient import TestClient

PASSWORD = "Passw0rd!"  # pragma: allowlist secret


@pytest.fixture
def salla_client() -> MagicMock:
    """Salla OAuth client double."""
    client = MagicMock()
    client.build_authorization_url = MagicMock(
        side_effect=lambda client_id, state: (
            f"https://accounts.salla.sa/oauth2/auth?client_id={client_id}&state={state}"
        )
    )
    client.exchange_code = AsyncMock(
        return_value=SallaTokens(
            access_token="salla-access", refresh_token="salla-refresh", expires_in=3600
        )
    )
    return client


@pytest.fixture
def auth_service(
    auth_repo: Any, session_manager: SessionManager, issuer: TokenIssuer
) -> AuthService:
    """Auth service over the in-memory repository."""
    return AuthService(auth_repo, session_manager, issuer)


@pytest.fixture
def store_service(store_repo: Any, salla_client: MagicMock, notifier: Any) -> StoreService:
    """Store service over the in-memory repository."""
    return StoreService(store_repo, salla_client, notifier, SecretCipher(Fernet.generate_key()))


@pytest.fixture
def client(
    auth_service: AuthService,
    invitation_manager: InvitationManager,
    store_service: StoreService,
) -> Iterator[TestClient]:
    """Test client for the application with services overridden."""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_invitation_manager] = lambda: invitation_manager
    app.dependency_overrides[get_store_service] = lambda: store_service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(auth_repo: Any) -> Callable[..., User]:
    """Factory for active, verified users with the test password."""

    def _create(email: str, role: UserRole, **fields: Any) -> User:
        user: User = auth_repo.add_user(
            email=email,
            full_name=fields.pop("full_name", email.split("@")[0].title()),
            password_hash=hash_password(PASSWORD),
            role=role,
            status=fields.pop("status", UserStatus.ACTIVE),
            email_verified=True,
            **fields,
        )
        return user

    return _create


@pytest.fixture
def login(client: TestClient) -> Callable[[str], dict[str, str]]:
    """Log in through the API and return the bearer header."""

    def _login(email: str) -> dict[str, str]:
        response = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert response.status_code == 200, response.text
        token = response.json()["data"]["tokens"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _login
