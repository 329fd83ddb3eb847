from __future__ import annotations
import logging
from typing import Any

import httpx
from pydantic import TypeAdapter

from ..schemas import ApiErr, ApiOk, ApiResult

logger = logging.getLogger(__name__)
_result = TypeAdapter(ApiResult)


class UpstreamError(Exception):
    """The activity API answered with a failure (or could not be reached)."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class UpstreamUnauthorized(UpstreamError):
    """Bearer token rejected; the portal session must be dropped."""


def _message_of(body: Any) -> str | None:
    if isinstance(body, dict):
        msg = body.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg
    return None


def parse_envelope(response: httpx.Response, default_message: str) -> ApiOk | ApiErr:
    """Turn a `{success, data, message}` reply into ApiOk / ApiErr."""
    try:
        body = response.json()
    except ValueError:
        body = None
    raw = body if isinstance(body, dict) else {}
    message = _message_of(raw)

    if response.is_success and raw.get("success", True) is not False:
        return _result.validate_python(
            {"kind": "ok", "status": response.status_code, "data": raw.get("data"), "message": message, "body": raw}
        )
    status_code = response.status_code if not response.is_success else 400
    return _result.validate_python({"kind": "error", "status": status_code, "message": message or default_message})


class ApiClient:
    """HTTP client for the activity REST API.

    Built once per portal request. Without a token it is the anonymous client used
    by public pages; with one, every call carries `Authorization: Bearer <token>`
    and a 401 reply raises UpstreamUnauthorized.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        default_message: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.default_message = default_message
        self._transport = transport

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def send(
        self, method: str, path: str, *, json: Any = None, params: dict[str, Any] | None = None
    ) -> ApiOk | ApiErr:
        """One round trip; never raises for HTTP-level failures."""
        try:
            async with self._client() as client:
                r = await client.request(method, path, json=json, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e!r}")
            return ApiErr(status=502, message=self.default_message)
        result = parse_envelope(r, self.default_message)
        if isinstance(result, ApiErr):
            logger.warning(f"{method} {path} -> {result.status}: {result.message}")
        return result

    def _raise_for(self, err: ApiErr) -> None:
        if err.status == 401 and self.authenticated:
            raise UpstreamUnauthorized(err.status, err.message)
        raise UpstreamError(err.status, err.message)

    async def request(
        self, method: str, path: str, *, json: Any = None, params: dict[str, Any] | None = None
    ) -> ApiOk:
        result = await self.send(method, path, json=json, params=params)
        if isinstance(result, ApiErr):
            self._raise_for(result)
        return result

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> ApiOk:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> ApiOk:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: Any = None) -> ApiOk:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> ApiOk:
        return await self.request("DELETE", path)

    async def download(self, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        """Fetch a binary export (Excel/PDF) as-is."""
        try:
            async with self._client() as client:
                r = await client.get(path, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"GET {path} failed: {e!r}")
            raise UpstreamError(502, self.default_message) from e
        if not r.is_success:
            self._raise_for(parse_envelope(r, self.default_message))
        return r
