"""Salla OAuth 2.0 client.

Implements the authorization code flow used to connect a merchant's
Salla store. Client credentials belong to the store, not the platform,
so they are passed per call.
"""

from dataclasses import dataclass, field
from urllib.parse import urlencode

import httpx
import structlog

from darkhorse.core.exceptions import UpstreamServiceError
from darkhorse.core.stores.types import SallaTokens

logger = structlog.get_logger()


@dataclass
class SallaConfig:
    """Salla OAuth endpoints and the callback registered with Salla."""

    redirect_uri: str
    authorize_url: str = "https://accounts.salla.sa/oauth2/auth"
    token_url: str = "https://accounts.salla.sa/oauth2/token"
    scopes: list[str] = field(default_factory=lambda: ["offline_access"])
    timeout_seconds: float = 10.0


class SallaOAuthClient:
    """Builds authorization URLs and exchanges codes for tokens."""

    def __init__(self, config: SallaConfig) -> None:
        """Initialize the client.

        Args:
            config: Salla endpoints and redirect URI.
        """
        self._config = config

    def build_authorization_url(self, client_id: str, state: str) -> str:
        """Build the URL the store admin visits to grant access.

        Args:
            client_id: The store's Salla app client ID.
            state: Single-use value echoed back to the callback.

        Returns:
            Full authorization URL with query parameters.
        """
        params = {
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": self._config.redirect_uri,
            "scope": " ".join(self._config.scopes),
            "state": state,
        }
        return f"{self._config.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, client_id: str, client_secret: str) -> SallaTokens:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the callback.
            client_id: The store's Salla app client ID.
            client_secret: The store's decrypted client secret.

        Returns:
            Access token, refresh token and lifetime.

        Raises:
            UpstreamServiceError: If Salla is unreachable, rejects the code,
                or answers without an access token.
        """
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                response = await client.post(
                    self._config.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self._config.redirect_uri,
                        "client_id": client_id,
                        "client_secret": client_secret,
                        "scope": " ".join(self._config.scopes),
                    },
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("salla_token_exchange_rejected", status_code=e.response.status_code)
            raise UpstreamServiceError(
                "Salla rejected the authorization code",
                {"status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("salla_token_exchange_failed", error=str(e))
            raise UpstreamServiceError("Salla is unreachable") from e
        except ValueError as e:
            raise UpstreamServiceError("Salla returned a malformed token response") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise UpstreamServiceError("Salla returned a malformed token response")

        try:
            expires_in = int(data.get("expires_in", 0))
        except (TypeError, ValueError) as e:
            raise UpstreamServiceError("Salla returned a malformed token response") from e

        return SallaTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=expires_in,
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
        )
