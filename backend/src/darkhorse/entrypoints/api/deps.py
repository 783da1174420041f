"""Dependency injection and application lifespan management."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from cryptography.fernet import Fernet
from fastapi import Request

from darkhorse.adapters.auth.postgres import PostgresAuthRepository
from darkhorse.adapters.db.app_db import AppDatabase
from darkhorse.adapters.notifications.email import EmailConfig, EmailNotifier
from darkhorse.adapters.salla.client import SallaConfig, SallaOAuthClient
from darkhorse.adapters.stores.postgres import PostgresStoreRepository
from darkhorse.core.auth.invitations import InvitationConfig, InvitationManager
from darkhorse.core.auth.jwt import JwtConfig, TokenIssuer
from darkhorse.core.auth.service import AuthService
from darkhorse.core.auth.sessions import SessionManager
from darkhorse.core.crypto import SecretCipher
from darkhorse.core.exceptions import DarkhorseError
from darkhorse.core.stores.service import StoreService
from darkhorse.entrypoints.api.log_config import configure_logging
from darkhorse.seed import seed_super_admin

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = structlog.get_logger()

DEV_JWT_SECRET = "dev-access-secret-change-me"
DEV_JWT_REFRESH_SECRET = "dev-refresh-secret-change-me"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/darkhorse")
        self.auto_create_schema = _env_bool("AUTO_CREATE_SCHEMA")

        # First SUPER_ADMIN, created on startup when both are set
        self.super_admin_email = os.getenv("SUPER_ADMIN_EMAIL") or None
        self.super_admin_password = os.getenv("SUPER_ADMIN_PASSWORD") or None

        # Tokens
        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY", DEV_JWT_SECRET)
        self.jwt_refresh_secret_key = os.getenv("JWT_REFRESH_SECRET_KEY", DEV_JWT_REFRESH_SECRET)
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
        self.refresh_token_expire_days = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
        self.token_expiry_warning_minutes = int(os.getenv("TOKEN_EXPIRY_WARNING_MINUTES", "10"))

        # Invitations
        self.invitation_expire_hours = int(os.getenv("INVITATION_EXPIRE_HOURS", "72"))
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:3000")

        # Email
        self.email_enabled = _env_bool("EMAIL_ENABLED")
        self.smtp_host = os.getenv("SMTP_HOST", "localhost")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER") or None
        self.smtp_password = os.getenv("SMTP_PASSWORD") or None
        self.smtp_use_tls = _env_bool("SMTP_USE_TLS", "true")
        self.email_from = os.getenv("EMAIL_FROM", "noreply@darkhorse3pl.com")
        self.email_from_name = os.getenv("EMAIL_FROM_NAME", "Dark Horse 3PL")

        # Salla
        self.salla_authorize_url = os.getenv(
            "SALLA_AUTHORIZE_URL", "https://accounts.salla.sa/oauth2/auth"
        )
        self.salla_token_url = os.getenv(
            "SALLA_TOKEN_URL", "https://accounts.salla.sa/oauth2/token"
        )
        self.salla_redirect_uri = os.getenv(
            "SALLA_REDIRECT_URI", "http://localhost:6001/api/v1/auth/salla/callback"
        )
        self.salla_scopes = os.getenv("SALLA_SCOPES", "offline_access").split()

        # Generated keys do not survive a restart; production must set one
        self.encryption_key = os.getenv("ENCRYPTION_KEY") or ""
        if not self.encryption_key and not self.is_production:
            self.encryption_key = Fernet.generate_key().decode()

        self.cors_origins = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment.lower() == "production"

    def validate(self) -> None:
        """Refuse to start production with development secrets.

        Raises:
            RuntimeError: If a required production setting is missing.
        """
        if not self.is_production:
            return
        if self.jwt_secret_key == DEV_JWT_SECRET or self.jwt_refresh_secret_key == (
            DEV_JWT_REFRESH_SECRET
        ):
            raise RuntimeError("JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY must be set")
        if self.jwt_secret_key == self.jwt_refresh_secret_key:
            raise RuntimeError("Access and refresh tokens must use different secrets")
        if not self.encryption_key:
            raise RuntimeError("ENCRYPTION_KEY must be set")


settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Logging configuration
    - Database connection pool setup (and schema creation when enabled)
    - Seeding the first SUPER_ADMIN when configured
    - Service wiring
    - Removal of sessions that expired while the service was down
    """
    configure_logging(settings.log_level, json_logs=settings.is_production)
    settings.validate()

    app_db = AppDatabase(settings.database_url)
    await app_db.connect()
    if settings.auto_create_schema:
        await app_db.create_schema()

    auth_repo = PostgresAuthRepository(app_db)
    store_repo = PostgresStoreRepository(app_db)

    if settings.super_admin_email and settings.super_admin_password:
        await seed_super_admin(
            auth_repo, settings.super_admin_email, settings.super_admin_password
        )

    issuer = TokenIssuer(
        JwtConfig(
            secret_key=settings.jwt_secret_key,
            refresh_secret_key=settings.jwt_refresh_secret_key,
            access_token_expire_minutes=settings.access_token_expire_minutes,
            refresh_token_expire_days=settings.refresh_token_expire_days,
            expiry_warning_minutes=settings.token_expiry_warning_minutes,
        )
    )
    sessions = SessionManager(auth_repo, issuer)

    notifier = EmailNotifier(
        EmailConfig(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            from_email=settings.email_from,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
            enabled=settings.email_enabled,
        )
    )
    salla = SallaOAuthClient(
        SallaConfig(
            redirect_uri=settings.salla_redirect_uri,
            authorize_url=settings.salla_authorize_url,
            token_url=settings.salla_token_url,
            scopes=settings.salla_scopes,
        )
    )

    app.state.app_db = app_db
    app.state.auth_service = AuthService(auth_repo, sessions, issuer)
    app.state.invitation_manager = InvitationManager(
        repo=auth_repo,
        stores=store_repo,
        sessions=sessions,
        notifier=notifier,
        config=InvitationConfig(
            frontend_url=settings.frontend_url,
            expire_hours=settings.invitation_expire_hours,
        ),
    )
    app.state.store_service = StoreService(
        repo=store_repo,
        salla=salla,
        notifier=notifier,
        cipher=SecretCipher(settings.encryption_key),
    )

    try:
        await sessions.cleanup_expired_sessions()
    except DarkhorseError as e:
        logger.warning("session_cleanup_failed", error=e.message)

    logger.info("service_started", environment=settings.environment)

    yield

    await app_db.close()


def get_app_db(request: Request) -> AppDatabase:
    """Get the application database from app state.

    Args:
        request: The current request.

    Returns:
        The configured AppDatabase.
    """
    app_db: AppDatabase = request.app.state.app_db
    return app_db


def get_auth_service(request: Request) -> AuthService:
    """Get the auth service from app state."""
    service: AuthService = request.app.state.auth_service
    return service


def get_invitation_manager(request: Request) -> InvitationManager:
    """Get the invitation manager from app state."""
    manager: InvitationManager = request.app.state.invitation_manager
    return manager


def get_store_service(request: Request) -> StoreService:
    """Get the store service from app state."""
    service: StoreService = request.app.state.store_service
    return service
