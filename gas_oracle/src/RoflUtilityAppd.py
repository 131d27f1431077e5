"""RoflUtilityAppd: ROFL utility for production appd daemon."""

import json
import logging
import time
from typing import Any

import cbor2
import httpx
from web3.types import TxParams

from .RoflUtility import RoflUtility, TxSubmitError

logger = logging.getLogger(__name__)

# Retry configuration for appd requests
MAX_RETRIES = 30  # ~30 seconds with 1s base delay
BACKOFF_BASE = 1.0
BACKOFF_MAX = 5.0


class RoflUtilityAppd(RoflUtility):
    """ROFL utility implementation for production appd daemon.

    Communicates with the ROFL appd via Unix domain socket or HTTP.

    :cvar ROFL_SOCKET_PATH: Default Unix socket path for appd.
    :ivar url: Optional HTTP URL or socket path override.
    :ivar max_retries: Attempts per appd request before giving up.
    """

    ROFL_SOCKET_PATH = "/run/rofl-appd.sock"

    def __init__(self, url: str = "", max_retries: int = MAX_RETRIES) -> None:
        """Initialize the appd utility.

        :param url: Optional URL or socket path. Empty uses default socket.
        :param max_retries: Attempts per request (default: 30).
        """
        self.url = url
        self.max_retries = max(1, max_retries)

    @property
    def socket_path(self) -> str | None:
        """Unix socket used to reach appd, or None when talking plain HTTP."""
        if self.url.startswith("http"):
            return None
        return self.url or self.ROFL_SOCKET_PATH

    def _build_transport(self) -> httpx.HTTPTransport | None:
        """Build HTTP transport for appd requests."""
        socket_path = self.socket_path
        if socket_path is None:
            return None
        logger.debug("Using unix domain socket: %s", socket_path)
        return httpx.HTTPTransport(uds=socket_path)

    def _appd_request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Make a request to the appd with retry and backoff.

        :param method: HTTP method ("GET" or "POST").
        :param path: API endpoint path.
        :param kwargs: Extra arguments for httpx (params, json).
        :returns: HTTP response.
        :raises TxSubmitError: If max retries exceeded.
        """
        transport = self._build_transport()
        base_url = self.url if self.url.startswith("http") else "http://localhost"

        with httpx.Client(transport=transport) as client:
            for attempt in range(self.max_retries):
                try:
                    logger.debug(
                        "%s %s %s (attempt %d)",
                        method,
                        path,
                        json.dumps(kwargs.get("json", kwargs.get("params"))),
                        attempt + 1,
                    )
                    response = client.request(
                        method, base_url + path, timeout=None, **kwargs
                    )
                    if response.is_success:
                        return response
                    logger.warning(
                        "appd %s %s failed: %s %s (attempt %d/%d)",
                        method,
                        path,
                        response.status_code,
                        response.reason_phrase,
                        attempt + 1,
                        self.max_retries,
                    )
                except httpx.RequestError as exc:
                    logger.warning(
                        "appd %s %s error: %s (attempt %d/%d)",
                        method,
                        path,
                        exc,
                        attempt + 1,
                        self.max_retries,
                    )
                if attempt + 1 < self.max_retries:
                    time.sleep(min(BACKOFF_BASE * (1.5 ** attempt), BACKOFF_MAX))

        raise TxSubmitError(
            f"appd {method} {path} failed after {self.max_retries} attempts"
        )

    def fetch_appid(self) -> str:
        """Fetch the current ROFL app ID from appd.

        :returns: Bech32-encoded app ID.
        """
        response = self._appd_request("GET", "/rofl/v1/app/id", params={})
        return response.content.decode("utf-8").strip()

    def submit_tx(self, tx: TxParams) -> str:
        """Submit a transaction via the ROFL appd sign-submit endpoint.

        appd reports the call result rather than a transaction hash, so the
        identifier is the hex-encoded ``ok`` payload, or "ok" if it is empty.

        :param tx: Transaction parameters including data, to, gas, value.
        :returns: Transaction identifier.
        :raises TxSubmitError: If appd is unreachable or the call failed.
        """
        # Strip 0x prefix from hex strings and normalize to lowercase
        data_hex = str(tx["data"]).removeprefix("0x").lower()
        to_hex = str(tx.get("to") or "").removeprefix("0x").lower()

        payload = {
            "tx": {
                "kind": "eth",
                "data": {
                    "gas_limit": int(tx["gas"]),
                    "to": to_hex,
                    "value": str(tx.get("value", 0)),
                    "data": data_hex,
                },
            },
            "encrypted": False,
        }

        response = self._appd_request("POST", "/rofl/v1/tx/sign-submit", json=payload)
        try:
            result = response.json()
        except ValueError as e:
            raise TxSubmitError(f"Invalid sign-submit response: {e}") from e
        return self.parse_call_result(result)

    @staticmethod
    def parse_call_result(result: dict) -> str:
        """Turn an appd sign-submit response into a transaction identifier.

        :param result: JSON body returned by appd.
        :returns: Transaction identifier.
        :raises TxSubmitError: If the response carries a failed call result.
        """
        raw = result.get("data") if isinstance(result, dict) else None
        if not raw:
            raise TxSubmitError(f"Empty sign-submit response: {result}")

        try:
            call_result = cbor2.loads(bytes.fromhex(raw))
        except (TypeError, ValueError, cbor2.CBORDecodeError) as e:
            raise TxSubmitError(f"Malformed call result: {e}") from e
        if not isinstance(call_result, dict) or "ok" not in call_result:
            raise TxSubmitError(f"Transaction failed: {call_result}")

        ok = call_result["ok"]
        if isinstance(ok, bytes) and ok:
            return "0x" + ok.hex()
        return "ok"
