"""HTTP transport with failure classification."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pymuseum._constants import USER_AGENT
from pymuseum._redact import redact_for_log
from pymuseum.config import MuseumConfig
from pymuseum.exceptions import (
    MuseumAuthRequiredError,
    MuseumConnectivityError,
    MuseumNotFoundError,
    MuseumRejectionError,
    MuseumValidationError,
)

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the remote service layer.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        ...


def rejection_for_status(status: int, message: str, *, endpoint: str) -> MuseumRejectionError:
    """Map an HTTP error status to the matching rejection exception."""
    if status in (400, 422):
        return MuseumValidationError(message, status_code=status, endpoint=endpoint)
    if status in (401, 403):
        return MuseumAuthRequiredError(message, status_code=status, endpoint=endpoint)
    if status == 404:
        return MuseumNotFoundError(message, status_code=status, endpoint=endpoint)
    return MuseumRejectionError(message, status_code=status, endpoint=endpoint)


def _error_message(text: str, status: int, endpoint: str) -> str:
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        body = None
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error") or body.get("detail")
        if isinstance(detail, str) and detail:
            return f"HTTP {status} from {endpoint}: {detail}"
    return f"HTTP {status} from {endpoint}: {text[:200]}"


def _decode_body(text: str, status: int, endpoint: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MuseumRejectionError(
            f"Invalid JSON from {endpoint}: {text[:200]}",
            status_code=status,
            endpoint=endpoint,
        ) from exc


class HttpTransport:
    """JSON-over-HTTP transport against the museum backend.

    Failures are classified at this boundary: anything that prevented a
    response from arriving becomes :class:`MuseumConnectivityError`, every
    error response becomes a :class:`MuseumRejectionError` subclass.
    """

    def __init__(
        self,
        config: MuseumConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.token:
            headers["authorization"] = f"Basic {self._config.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._config.base_url.rstrip('/')}{path}"
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        _logger.debug("%s %s", method, url)
        if self._config.api_trace_enabled:
            _logger.debug("request body=%s params=%s", redact_for_log(json), query)

        try:
            async with self._http.request(
                method,
                url,
                json=json,
                params=query or None,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise MuseumConnectivityError(
                f"Request to {path} failed: {exc!r}",
                endpoint=path,
            ) from exc

        if status >= 400:
            raise rejection_for_status(status, _error_message(text, status, path), endpoint=path)

        if not text.strip():
            return None

        body = _decode_body(text, status, path)
        if self._config.api_trace_enabled:
            _logger.debug("response %s body=%s", path, redact_for_log(body))
        return body
