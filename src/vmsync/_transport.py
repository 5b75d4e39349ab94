"""HTTP transport to the daemon over TCP or a unix socket."""

from __future__ import annotations

import json
import logging
import ssl
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from vmsync._constants import USER_AGENT
from vmsync._redact import redact_for_log
from vmsync.config import SyncConfig
from vmsync.exceptions import TransportError, UnavailableError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by :class:`vmsync.client.DaemonClient`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def post(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...


def build_ssl_context(config: SyncConfig) -> ssl.SSLContext | None:
    """SSL context presenting the configured client certificate.

    Returns ``None`` when no certificate is configured (plain HTTP, e.g. a
    unix socket protected by filesystem permissions).
    """
    if config.cert_file is None or config.key_file is None:
        return None
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=config.ca_file)
    context.load_cert_chain(config.cert_file, config.key_file)
    if config.ca_file is None:
        # The daemon presents a self-signed certificate generated at install time.
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def build_connector(config: SyncConfig) -> aiohttp.BaseConnector:
    address = config.address
    if address.is_unix:
        return aiohttp.UnixConnector(path=address.path)
    return aiohttp.TCPConnector(ssl=build_ssl_context(config) or False)


def base_url(config: SyncConfig) -> str:
    address = config.address
    if address.is_unix:
        # Host is ignored by the unix connector but must be a valid URL.
        return "http://localhost"
    scheme = "https" if config.cert_file else "http"
    host = f"[{address.host}]" if ":" in address.host else address.host
    return f"{scheme}://{host}:{address.port}"


class HttpTransport:
    """JSON-over-HTTP transport to the daemon."""

    def __init__(self, config: SyncConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._base_url = base_url(config)

    async def post(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON object.

        Connection-level failures raise :class:`UnavailableError`; any other
        failure raises :class:`TransportError`.
        """
        url = f"{self._base_url}{endpoint}"
        headers = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        body = json.dumps(dict(payload), separators=(",", ":"))

        _logger.debug("POST %s %s", url, redact_for_log(dict(payload)))

        try:
            async with self._http.post(url, data=body, headers=headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise TransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except TransportError:
            raise
        except aiohttp.ClientConnectionError as exc:
            raise UnavailableError(
                f"Daemon unreachable at {self._config.server_address}: {exc}",
                endpoint=endpoint,
            ) from exc
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            result = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise TransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if not isinstance(result, dict):
            raise TransportError(
                f"Expected a JSON object from {endpoint}",
                endpoint=endpoint,
            )

        _logger.debug("Response %s %s", endpoint, redact_for_log(result))
        return result
