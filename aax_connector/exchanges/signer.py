"""
Request signing for AAX private endpoints.

Canonical message::

    <nonce>:<VERB><path><data>

``path`` is the versioned request path; for GET it also carries the
url-encoded query (``/v2/spot/orders?symbol=BTCUSDT``) and ``data`` is
empty. For mutating verbs the parameters travel as a compact JSON body
and ``data`` is that exact body string.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from aax_connector.core.errors import MissingCredentials

API_KEY_HEADER = "X-ACCESS-KEY"
NONCE_HEADER = "X-ACCESS-NONCE"
SIGNATURE_HEADER = "X-ACCESS-SIGN"

READ_VERBS = ("GET",)


def _milliseconds() -> int:
    return int(time.time() * 1000)


def _wire_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def encode_query(params: Optional[Dict[str, Any]]) -> str:
    """Url-encode *params*, dropping unset values."""
    if not params:
        return ""
    return urlencode({k: _wire_value(v) for k, v in params.items() if v is not None})


def encode_body(params: Optional[Dict[str, Any]]) -> str:
    """Compact JSON body; lists stay JSON arrays."""
    cleaned = {k: v for k, v in (params or {}).items() if v is not None}
    return json.dumps(cleaned, separators=(",", ":"))


def build_url(base_url: str, path: str, params: Optional[Dict[str, Any]] = None) -> str:
    query = encode_query(params)
    return f"{base_url}{path}?{query}" if query else f"{base_url}{path}"


@dataclass(frozen=True)
class SignedRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    message: str = ""


class RequestSigner:
    """
    Builds authenticated request envelopes.

    Parameters
    ----------
    api_key, secret : str
        Credential pair; both are required before anything is signed.
    base_url : str
        Venue root, e.g. ``https://api.aaxpro.com``.
    clock : callable, optional
        Returns the current time in milliseconds; used as the nonce.
    """

    def __init__(
        self,
        api_key: Optional[str],
        secret: Optional[str],
        base_url: str,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._api_key = api_key
        self._secret = secret
        self._base_url = base_url.rstrip("/")
        self._clock = clock or _milliseconds

    def check_credentials(self) -> None:
        if not self._api_key or not self._secret:
            raise MissingCredentials("aax requires both an api_key and a secret for private endpoints")

    def nonce(self) -> str:
        return str(self._clock())

    def signature(self, message: str) -> str:
        return hmac.new(
            self._secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    @staticmethod
    def canonical_message(nonce: str, verb: str, path: str, data: str) -> str:
        return f"{nonce}:{verb}{path}{data}"

    def sign(
        self,
        verb: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> SignedRequest:
        self.check_credentials()
        verb = verb.upper()
        nonce = self.nonce()
        headers = {
            API_KEY_HEADER: self._api_key,
            NONCE_HEADER: nonce,
        }

        if verb in READ_VERBS:
            query = encode_query(params)
            request_path = f"{path}?{query}" if query else path
            message = self.canonical_message(nonce, verb, request_path, "")
            headers["accept"] = "application/json;charset=UTF-8"
            body = None
        else:
            request_path = path
            body = encode_body(params)
            message = self.canonical_message(nonce, verb, request_path, body)
            headers["Content-Type"] = "application/json"

        headers[SIGNATURE_HEADER] = self.signature(message)
        return SignedRequest(
            method=verb,
            url=self._base_url + request_path,
            headers=headers,
            body=body,
            message=message,
        )
