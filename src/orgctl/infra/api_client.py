"""httpx-backed client for the control-plane API.

This module is the **only** place in the codebase that imports
``httpx``.  Every transport or HTTP failure is caught here and
re-raised as :class:`~orgctl.exceptions.ApiError`, nothing raw escapes
the infrastructure boundary.

The client holds no session state.  :meth:`ApiClient.auth` returns an
:class:`AuthorizedClient`, an immutable view that attaches the
session's bearer token to each request it issues, so one ``ApiClient``
can be shared by concurrent sessions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from orgctl.core.models import Session
from orgctl.exceptions import ApiError
from orgctl.version import __version__

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """Decoded API response.

    ``body`` is always an ordered tuple of records; a single-object body
    is normalised to a one-element tuple.
    """

    status: int
    body: tuple[Mapping[str, Any], ...]


class ApiClient:
    """Generic ``get``/``post`` helper against named resource collections.

    Parameters
    ----------
    base_url:
        Root URL of the API (e.g. ``https://api.orgctl.dev/v1``).
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={
                "User-Agent": f"orgctl/{__version__}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Session binding
    # ------------------------------------------------------------------

    def auth(self, session: Session) -> AuthorizedClient:
        """Return a request helper that authenticates as *session*."""
        return AuthorizedClient(self, session)

    # ------------------------------------------------------------------
    # Request primitives
    # ------------------------------------------------------------------

    def get(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
        *,
        session: Session | None = None,
    ) -> ApiResponse:
        """``GET`` *path* with query *params*."""
        return self._request("GET", path, session=session, params=params)

    def post(
        self,
        path: str,
        json: Mapping[str, Any] | None = None,
        *,
        session: Session | None = None,
    ) -> ApiResponse:
        """``POST`` *json* to *path*."""
        return self._request("POST", path, session=session, json=json)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        session: Session | None,
        params: Mapping[str, str] | None = None,
        json: Mapping[str, Any] | None = None,
    ) -> ApiResponse:
        headers: dict[str, str] = {}
        if session is not None:
            headers["Authorization"] = f"Bearer {session.token}"

        logger.debug("%s %s", method, path)
        try:
            response = self._http.request(
                method,
                path,
                params=dict(params) if params is not None else None,
                json=dict(json) if json is not None else None,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise ApiError(
                path,
                None,
                str(exc) or type(exc).__name__,
                transport=True,
                hint="Check your network connection and ORGCTL_API_URL.",
            ) from exc

        payload = self._decode(path, response)
        if not response.is_success:
            raise ApiError(
                path,
                response.status_code,
                self._error_reason(payload, response),
                hint=self._hint_for(response.status_code),
            )

        return ApiResponse(
            status=response.status_code,
            body=self._normalise_body(path, response.status_code, payload),
        )

    @staticmethod
    def _decode(path: str, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            if not response.is_success:
                # The status line still says more than a decode error would.
                return None
            raise ApiError(
                path,
                response.status_code,
                "response is not valid JSON",
            ) from exc

    @staticmethod
    def _error_reason(payload: Any, response: httpx.Response) -> str:
        if isinstance(payload, Mapping):
            for key in ("error", "message"):
                value = payload.get(key)
                if isinstance(value, str) and value:
                    return value
            body = payload.get("body")
            if isinstance(body, Mapping):
                for key in ("error", "message"):
                    value = body.get(key)
                    if isinstance(value, str) and value:
                        return value
                messages = body.get("messages")
                if isinstance(messages, list) and messages:
                    return "; ".join(str(m) for m in messages)
        return response.reason_phrase or "request failed"

    @staticmethod
    def _hint_for(status: int) -> str | None:
        if status == 401:
            return "Your session may have expired. Log in again with: orgctl login"
        if status == 403:
            return "You do not have access to this resource."
        return None

    @staticmethod
    def _normalise_body(path: str, status: int, payload: Any) -> tuple[Mapping[str, Any], ...]:
        if payload is None:
            return ()
        body = payload.get("body") if isinstance(payload, Mapping) else payload
        if body is None:
            return ()
        if isinstance(body, Mapping):
            return (body,)
        if isinstance(body, list) and all(isinstance(item, Mapping) for item in body):
            return tuple(body)
        raise ApiError(path, status, "unexpected response body shape")


class AuthorizedClient:
    """An :class:`ApiClient` view bound to one :class:`Session`.

    Immutable: the session is fixed at construction and passed
    explicitly with every request.
    """

    __slots__ = ("_client", "_session")

    def __init__(self, client: ApiClient, session: Session) -> None:
        self._client = client
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def get(
        self,
        path: str,
        params: Mapping[str, str] | None = None,
    ) -> ApiResponse:
        return self._client.get(path, params, session=self._session)

    def post(
        self,
        path: str,
        json: Mapping[str, Any] | None = None,
    ) -> ApiResponse:
        return self._client.post(path, json, session=self._session)
