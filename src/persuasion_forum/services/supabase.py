"""Client for the hosted backend (database RPCs, auth provider, edge functions).

This module provides the SupabaseClient class that handles all communication
between this service and the hosted backend. It includes:

- Access-token validation and PKCE code exchange against the auth provider
- Stored-procedure calls (``/rest/v1/rpc/<name>``) and simple table reads/writes
- Serverless function invocation (``/functions/v1/<name>``)

Every call is attempted exactly once; failures surface as ``SupabaseError``
subclasses carrying the provider's message.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from persuasion_forum.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_ACCEPTABLE = 406

# PostgREST code for "JSON object requested, multiple (or no) rows returned".
NO_ROWS_CODE = "PGRST116"


class SupabaseError(RuntimeError):
    """Base exception raised for hosted-backend failures."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class SupabaseDisabledError(SupabaseError):
    """Raised when the client is used without a configured URL and key."""


class SupabaseAuthError(SupabaseError):
    """Raised when the auth provider rejects a token or grant."""


class SupabaseNotFoundError(SupabaseError):
    """Raised when a single-row read matched no rows."""


@dataclass(frozen=True)
class SupabaseConfig:
    """Immutable configuration for hosted-backend access."""

    url: str | None
    api_key: str | None
    timeout_seconds: float
    service_role: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.api_key)


@dataclass(frozen=True)
class AuthUser:
    """Identity returned by the auth provider for a valid access token."""

    id: str
    email: str | None = None
    user_metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        """Return the name shown next to comments written by this user."""
        name = self.user_metadata.get("user_name")
        if name:
            return str(name)
        if self.email:
            return self.email.split("@", 1)[0]
        return "Anonymous"

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "user_metadata": dict(self.user_metadata)}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> AuthUser:
        return cls(
            id=str(payload["id"]),
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
        )


@dataclass(frozen=True)
class AuthSession:
    """Token pair issued by the auth provider."""

    access_token: str
    refresh_token: str
    expires_in: int | None
    user: AuthUser | None


def load_supabase_config(*, service_role: bool = False) -> SupabaseConfig:
    """Build configuration object from global settings.

    Args:
        service_role: Use the service-role key instead of the anon key. Only
            scheduled jobs should ask for this.
    """
    api_key = settings.supabase_service_role_key if service_role else settings.supabase_anon_key
    return SupabaseConfig(
        url=settings.supabase_url.rstrip("/") if settings.supabase_url else None,
        api_key=api_key,
        timeout_seconds=float(settings.supabase_timeout_seconds),
        service_role=service_role,
    )


def _error_message(response: httpx.Response) -> tuple[str, str | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None

    if not isinstance(body, dict):
        return str(body), None

    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or f"HTTP {response.status_code}"
    )
    code = body.get("code") or body.get("error_code")
    return str(message), str(code) if code is not None else None


class SupabaseClient:
    """HTTP client wrapper for hosted-backend interactions."""

    def __init__(
        self,
        config: SupabaseConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_supabase_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise SupabaseDisabledError("Hosted backend URL or API key is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self, *, bearer: str | None = None) -> dict[str, str]:
        api_key = self.config.api_key or ""
        return {
            "apikey": api_key,
            "Authorization": f"Bearer {bearer or api_key}",
        }

    @dataclass
    class RequestParams:
        """Parameters for HTTP requests."""
        method: str
        path: str
        json_data: Any | None = None
        params: Mapping[str, Any] | None = None
        headers: dict[str, str] | None = None
        bearer: str | None = None

    async def _request(self, params: RequestParams) -> httpx.Response:
        client = await self._ensure_client()
        headers = self._headers(bearer=params.bearer)
        if params.headers:
            headers.update(params.headers)

        try:
            response = await client.request(
                params.method,
                params.path,
                json=params.json_data,
                params=params.params,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise SupabaseError(f"Request to {params.path} failed: {exc}") from exc

        if response.is_success:
            return response

        message, code = _error_message(response)
        if code == NO_ROWS_CODE:
            raise SupabaseNotFoundError(message, status_code=response.status_code, code=code)
        if response.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            raise SupabaseAuthError(message, status_code=response.status_code, code=code)
        raise SupabaseError(message, status_code=response.status_code, code=code)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SupabaseError(
                f"Invalid JSON from {response.request.url.path}: {exc}",
                status_code=response.status_code,
            ) from exc

    # --- Auth provider ------------------------------------------------------------

    async def get_user(self, access_token: str) -> AuthUser:
        """Validate an access token and return the user it belongs to."""
        response = await self._request(
            self.RequestParams(method="GET", path="/auth/v1/user", bearer=access_token)
        )
        payload = self._json(response)
        if not isinstance(payload, dict) or not payload.get("id"):
            raise SupabaseAuthError("Auth provider returned no user")
        return AuthUser.from_payload(payload)

    async def exchange_code_for_session(
        self,
        code: str,
        code_verifier: str | None = None,
    ) -> AuthSession:
        """Exchange an OAuth authorization code for a session (PKCE grant)."""
        body: dict[str, str] = {"auth_code": code}
        if code_verifier:
            body["code_verifier"] = code_verifier

        response = await self._request(
            self.RequestParams(
                method="POST",
                path="/auth/v1/token",
                params={"grant_type": "pkce"},
                json_data=body,
            )
        )
        payload = self._json(response) or {}
        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        if not access_token or not refresh_token:
            raise SupabaseAuthError("Auth provider returned no session")

        user_payload = payload.get("user")
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=payload.get("expires_in"),
            user=AuthUser.from_payload(user_payload) if user_payload else None,
        )

    # --- Database -----------------------------------------------------------------

    async def rpc(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        """Call a stored procedure by name and return its decoded result."""
        response = await self._request(
            self.RequestParams(
                method="POST",
                path=f"/rest/v1/rpc/{name}",
                json_data=dict(params or {}),
            )
        )
        return self._json(response)

    async def select(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: Mapping[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
        single: bool = False,
    ) -> Any:
        """Read rows from a table.

        Args:
            table: Table name.
            columns: PostgREST ``select`` expression.
            filters: Column to PostgREST operator expression, e.g.
                ``{"post_id": "eq.3", "vote_deadline": "not.is.null"}``.
            order: PostgREST order expression, e.g. ``"vote_deadline.desc"``.
            limit: Maximum number of rows.
            single: Expect exactly one row and return it as a dict.

        Raises:
            SupabaseNotFoundError: ``single`` was requested and no row matched.
        """
        query: dict[str, Any] = {"select": columns}
        if filters:
            query.update(filters)
        if order:
            query["order"] = order
        if limit is not None:
            query["limit"] = limit

        headers = {"Accept": "application/vnd.pgrst.object+json"} if single else None
        try:
            response = await self._request(
                self.RequestParams(
                    method="GET",
                    path=f"/rest/v1/{table}",
                    params=query,
                    headers=headers,
                )
            )
        except SupabaseError as exc:
            if single and exc.status_code == HTTP_NOT_ACCEPTABLE:
                raise SupabaseNotFoundError(
                    exc.message, status_code=exc.status_code, code=NO_ROWS_CODE
                ) from exc
            raise
        return self._json(response)

    async def insert(self, table: str, row: Mapping[str, Any]) -> Any:
        """Insert a row and return the stored representation."""
        response = await self._request(
            self.RequestParams(
                method="POST",
                path=f"/rest/v1/{table}",
                json_data=dict(row),
                headers={"Prefer": "return=representation"},
            )
        )
        body = self._json(response)
        if isinstance(body, list) and len(body) == 1:
            return body[0]
        return body

    # --- Serverless functions -----------------------------------------------------

    async def invoke_function(self, name: str, body: Mapping[str, Any] | None = None) -> Any:
        """Invoke a serverless function by name and return its JSON body."""
        response = await self._request(
            self.RequestParams(
                method="POST",
                path=f"/functions/v1/{name}",
                json_data=dict(body or {}),
            )
        )
        return self._json(response)


_client_instance: SupabaseClient | None = None


def get_supabase_client() -> SupabaseClient:
    """Return a shared anon-key client instance."""
    global _client_instance
    if _client_instance is None:
        _client_instance = SupabaseClient()
    return _client_instance


def get_service_client() -> SupabaseClient:
    """Return a new client authenticated with the service-role key."""
    return SupabaseClient(load_supabase_config(service_role=True))
