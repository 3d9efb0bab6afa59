"""
Default HTTP transport for the AAX adapter.

Implements the single method the adapter needs::

    request(method, url, headers, body) -> decoded JSON

Only GET requests are retried, and only on connection errors / timeouts.
Order placement, amendment and cancellation are sent exactly once.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from aax_connector.core.errors import BadResponse, TransportError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_REQUEST_TIMEOUT = 10
_RETRY_ATTEMPTS = 3
_RETRY_DELAY = 1
_POOL_SIZE = 4

logger = logging.getLogger(__name__)


class HttpTransport:
    """
    Thin ``requests.Session`` wrapper.

    Parameters
    ----------
    timeout : int
        Per-request timeout in seconds.
    retries : int
        Attempts for GET requests that fail before a response arrives.
    session : requests.Session, optional
        Pre-built session (useful for testing).
    """

    def __init__(
        self,
        timeout: int = _REQUEST_TIMEOUT,
        retries: int = _RETRY_ATTEMPTS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.retries = max(1, retries)
        self._session = session or self._build_session()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> Any:
        method = method.upper()
        attempts = self.retries if method == "GET" else 1
        resp = self._send_with_retry(method, url, headers, body, attempts)
        return self._decode(method, url, resp)

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        adapter = requests.adapters.HTTPAdapter(
            pool_connections=_POOL_SIZE,
            pool_maxsize=_POOL_SIZE * 2,
        )
        session.mount("https://", adapter)
        return session

    def _send_with_retry(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]],
        body: Optional[str],
        attempts: int,
    ) -> requests.Response:
        for attempt in range(1, attempts + 1):
            try:
                return self._session.request(
                    method, url, headers=headers, data=body, timeout=self.timeout
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt == attempts:
                    raise TransportError(f"aax {method} {url} failed: {exc}") from exc
                logger.warning(f"attempt {attempt} failed for {method} {url}: {exc}. Retrying...")
                time.sleep(_RETRY_DELAY * attempt)
            except requests.RequestException as exc:
                raise TransportError(f"aax {method} {url} failed: {exc}") from exc

    @staticmethod
    def _decode(method: str, url: str, resp: requests.Response) -> Any:
        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"aax {method} {url} returned HTTP {resp.status_code}",
                status=resp.status_code,
                payload=payload if payload is not None else resp.text,
            )
        if payload is None:
            raise BadResponse(f"aax {method} {url} returned a non-JSON body", response=resp.text)
        return payload
