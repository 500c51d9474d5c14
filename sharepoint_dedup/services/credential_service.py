"""
Client-credentials token provider for Microsoft Graph.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

import requests
from pydantic import BaseModel

from sharepoint_dedup.config import AzureAdConfig
from sharepoint_dedup.core.errors import TransportError, UnauthorizedError

logger = logging.getLogger(__name__)


class AccessToken(BaseModel):
    """A bearer token and the moment it stops being usable."""
    token: str
    expiry: datetime


class ClientSecretCredential:
    """Acquires and caches app-only tokens from the Azure AD token endpoint."""

    # Refresh a little before the token actually expires
    REFRESH_MARGIN = timedelta(minutes=5)

    def __init__(self, config: AzureAdConfig, session: Optional[requests.Session] = None, timeout: float = 30.0):
        """Initialize the credential.

        Args:
            config: Tenant, client id and secret of the app registration.
            session: Optional session to issue token requests with.
            timeout: Seconds to wait for the token endpoint.
        """
        self.config = config
        self.timeout = timeout
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._cached: Optional[AccessToken] = None

    @property
    def token_url(self) -> str:
        authority = self.config.authority_host.rstrip("/")
        return f"{authority}/{self.config.tenant_id}/oauth2/v2.0/token"

    def get_token(self) -> str:
        """Return a valid bearer token, fetching a new one when needed.

        Raises:
            UnauthorizedError: credentials missing or rejected.
            TransportError: the token endpoint could not be reached.
        """
        if not self.config.is_configured():
            raise UnauthorizedError(
                "Azure AD configuration is missing. Please configure "
                "azure_ad.tenant_id, azure_ad.client_id and azure_ad.client_secret."
            )

        with self._lock:
            if self._cached and datetime.now() < self._cached.expiry - self.REFRESH_MARGIN:
                return self._cached.token
            self._cached = self._request_token()
            return self._cached.token

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a fresh one."""
        with self._lock:
            self._cached = None

    def _request_token(self) -> AccessToken:
        data = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "scope": self.config.scope,
        }
        try:
            response = self._session.post(self.token_url, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Token request failed: {e}") from e

        if response.status_code in (400, 401, 403):
            try:
                payload = response.json()
                description = payload.get("error_description") or payload.get("error")
            except ValueError:
                description = None
            raise UnauthorizedError(description or f"Token request rejected ({response.status_code})")
        if response.status_code >= 400:
            raise TransportError(f"Token endpoint returned {response.status_code}")

        payload = response.json()
        expires_in = int(payload.get("expires_in", 3600))
        logger.info(f"Acquired Graph access token (expires in {expires_in}s)")
        return AccessToken(
            token=payload["access_token"],
            expiry=datetime.now() + timedelta(seconds=expires_in),
        )
