# src/remit/exchanges/bitso/rest.py
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any
from urllib.parse import urlencode

import requests

from src.remit.core.errors import UpstreamApiError

BASE_URL = "https://api.bitso.com"
STAGING_URL = "https://stage.bitso.com"
API_PREFIX = "/v3"

log = logging.getLogger("src.remit.exchanges.bitso.rest")

# only these methods are replayed on 429/5xx; order and withdrawal POSTs are not idempotent
_RETRYABLE_METHODS = {"GET"}


def _nonce_ms() -> int:
    return int(time.time() * 1000)


class BitsoREST:
    """
    Bitso v3 REST client (signed + public).

    GET requests are retried with backoff on 429/5xx and network errors.
    POST requests are sent exactly once; failures surface as UpstreamApiError.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 5,
        backoff_base: float = 1.5,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or ""
        self.api_secret = (api_secret or "").encode("utf-8")

        self.timeout = float(timeout)
        self.max_retries = max(1, int(max_retries))
        self.backoff_base = float(backoff_base)

        self.sess = session or requests.Session()
        self.sess.headers.update({"Content-Type": "application/json"})

    # ---------------------------------------------------------------------
    # SIGN
    # ---------------------------------------------------------------------

    def _auth_header(self, method: str, request_path: str, payload: str) -> str:
        """
        Authorization: Bitso <key>:<nonce>:<signature>
        signature = HMAC_SHA256(secret, nonce + METHOD + request_path + payload)
        """
        if not self.api_key or not self.api_secret:
            raise RuntimeError("Bitso signed request requires api_key and api_secret")

        nonce = _nonce_ms()
        data = f"{nonce}{method.upper()}{request_path}{payload}"
        sig = hmac.new(self.api_secret, data.encode("utf-8"), hashlib.sha256).hexdigest()
        return f"Bitso {self.api_key}:{nonce}:{sig}"

    # ---------------------------------------------------------------------
    # CORE REQUEST (WITH BACKOFF)
    # ---------------------------------------------------------------------

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        signed: bool = True,
    ) -> Any:
        method = method.upper()
        request_path = f"{API_PREFIX}/{endpoint.lstrip('/')}"
        if params:
            request_path += "?" + urlencode(params, doseq=True)
        url = f"{self.base_url}{request_path}"
        payload = json.dumps(body, separators=(",", ":")) if body else ""

        attempts = self.max_retries if method in _RETRYABLE_METHODS else 1
        last_err: UpstreamApiError | None = None

        for attempt in range(1, attempts + 1):
            headers: dict[str, str] = {}
            if signed:
                # nonce must increase per attempt
                headers["Authorization"] = self._auth_header(method, request_path, payload)

            try:
                r = self.sess.request(
                    method=method,
                    url=url,
                    data=payload or None,
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                last_err = UpstreamApiError(None, repr(e), message=f"Bitso transport error {method} {request_path}: {e!r}")
                if attempt < attempts:
                    sleep = self.backoff_base * attempt
                    log.warning(
                        "Bitso request error (%s %s), retry %d/%d, sleep %.1fs | %r",
                        method, request_path, attempt, attempts, sleep, e,
                    )
                    time.sleep(sleep)
                    continue
                raise last_err from e

            # --- RATE LIMIT / TEMP SERVER ERRORS ---
            if r.status_code == 429 or r.status_code >= 500:
                last_err = UpstreamApiError(r.status_code, r.text[:500])
                if attempt < attempts:
                    sleep = self.backoff_base * attempt
                    log.warning(
                        "Bitso %d (%s %s), retry %d/%d, sleep %.1fs",
                        r.status_code, method, request_path, attempt, attempts, sleep,
                    )
                    time.sleep(sleep)
                    continue
                raise last_err

            # --- OTHER ERRORS ---
            if r.status_code >= 400:
                try:
                    err_body: Any = r.json()
                except ValueError:
                    err_body = r.text[:500]
                raise UpstreamApiError(
                    r.status_code,
                    err_body,
                    message=f"Bitso HTTP {r.status_code} {method} {request_path}: {_error_text(err_body)}",
                )

            # --- OK ---
            if not r.text:
                return None
            try:
                data = r.json()
            except ValueError:
                raise UpstreamApiError(r.status_code, r.text[:500], message=f"Bitso non-JSON response {method} {request_path}")

            if isinstance(data, dict) and data.get("success") is False:
                raise UpstreamApiError(
                    r.status_code,
                    data,
                    message=f"Bitso unsuccessful response {method} {request_path}: {_error_text(data)}",
                )
            if isinstance(data, dict) and "payload" in data:
                return data["payload"]
            return data

        # unreachable: the loop either returns or raises
        raise last_err or UpstreamApiError(None, "no attempts made")

    # ---------------------------------------------------------------------
    # HTTP WRAPPERS
    # ---------------------------------------------------------------------

    def _get(self, endpoint: str, *, params: dict[str, Any] | None = None, signed: bool = True):
        return self._request("GET", endpoint, params=params, signed=signed)

    def _post(self, endpoint: str, *, body: dict[str, Any] | None = None, signed: bool = True):
        return self._request("POST", endpoint, body=body, signed=signed)

    # ---------------------------------------------------------------------
    # API METHODS
    # ---------------------------------------------------------------------

    def balance(self) -> dict:
        return self._get("balance")

    def ticker(self, book: str | None = None):
        params = {"book": book} if book else None
        return self._get("ticker/", params=params, signed=False)

    def place_order(self, **kwargs) -> dict:
        # kwargs: book, side, type, major|minor, price
        return self._post("orders", body=kwargs)

    def lookup_order(self, oid: str) -> list:
        return self._get(f"orders/{oid}")

    def order_trades(self, oid: str) -> list:
        return self._get(f"order_trades/{oid}")

    def withdraw(self, **kwargs) -> dict:
        return self._post("withdrawals", body=kwargs)

    def lookup_withdrawal(self, wid: str):
        return self._get(f"withdrawals/{wid}")

    def withdrawal_methods(self, currency: str) -> list:
        return self._get(f"withdrawal_methods/{currency.lower()}")


def _error_text(body: Any) -> str:
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return f"code={err.get('code')} msg={err.get('message')}"
        if err:
            return str(err)
    return str(body)[:500]
