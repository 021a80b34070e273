"""
Bitso REST client: signing, envelope, retry policy (mocked session)
"""

import hashlib
import hmac
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from src.remit.core.errors import UpstreamApiError
from src.remit.exchanges.bitso.rest import BitsoREST


def _resp(status=200, body=None, text=None):
    r = MagicMock()
    r.status_code = status
    if body is not None:
        r.text = json.dumps(body)
        r.json.return_value = body
    else:
        r.text = text or ""
        r.json.side_effect = ValueError("no json")
    return r


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    return s


@pytest.fixture
def rest(session):
    return BitsoREST("key", "secret", base_url="https://stage.bitso.com/", max_retries=3, backoff_base=0.5, session=session)


class TestSigning:
    def test_authorization_header(self, rest, session):
        session.request.return_value = _resp(body={"success": True, "payload": {"oid": "abc"}})

        with patch("src.remit.exchanges.bitso.rest._nonce_ms", return_value=1700000000000):
            out = rest.place_order(book="usd_mxn", side="buy", type="market", minor="1000")

        assert out == {"oid": "abc"}
        kw = session.request.call_args.kwargs
        assert kw["url"] == "https://stage.bitso.com/v3/orders"
        payload = kw["data"]
        assert json.loads(payload)["minor"] == "1000"

        expected = hmac.new(
            b"secret",
            f"1700000000000POST/v3/orders{payload}".encode(),
            hashlib.sha256,
        ).hexdigest()
        assert kw["headers"]["Authorization"] == f"Bitso key:1700000000000:{expected}"

    def test_public_ticker_is_unsigned(self, rest, session):
        session.request.return_value = _resp(body={"success": True, "payload": []})
        rest.ticker()
        assert "Authorization" not in session.request.call_args.kwargs["headers"]

    def test_signed_call_without_keys(self, session):
        r = BitsoREST("", "", session=session)
        with pytest.raises(RuntimeError):
            r.balance()
        session.request.assert_not_called()


class TestResponses:
    def test_unsuccessful_envelope(self, rest, session):
        session.request.return_value = _resp(body={"success": False, "error": {"code": "0301", "message": "bad"}})
        with pytest.raises(UpstreamApiError) as ei:
            rest.balance()
        assert "0301" in str(ei.value)

    def test_client_error_not_retried(self, rest, session):
        session.request.return_value = _resp(400, body={"success": False, "error": {"code": "0201"}})
        with pytest.raises(UpstreamApiError) as ei:
            rest.lookup_order("abc")
        assert ei.value.status == 400
        assert not ei.value.is_transient
        assert session.request.call_count == 1


class TestRetryPolicy:
    @patch("src.remit.exchanges.bitso.rest.time.sleep")
    def test_get_retried_on_5xx(self, sleep, rest, session):
        session.request.side_effect = [
            _resp(502, text="bad gateway"),
            _resp(429, text="slow"),
            _resp(body={"success": True, "payload": [{"oid": "abc"}]}),
        ]

        assert rest.lookup_order("abc") == [{"oid": "abc"}]
        assert session.request.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    @patch("src.remit.exchanges.bitso.rest.time.sleep")
    def test_get_gives_up_after_max_retries(self, sleep, rest, session):
        session.request.return_value = _resp(503, text="down")
        with pytest.raises(UpstreamApiError) as ei:
            rest.balance()
        assert ei.value.status == 503
        assert session.request.call_count == 3

    @patch("src.remit.exchanges.bitso.rest.time.sleep")
    def test_post_never_retried(self, sleep, rest, session):
        session.request.return_value = _resp(503, text="down")
        with pytest.raises(UpstreamApiError):
            rest.withdraw(currency="ars", amount="10")
        assert session.request.call_count == 1
        sleep.assert_not_called()

    @patch("src.remit.exchanges.bitso.rest.time.sleep")
    def test_post_transport_error_is_transient(self, sleep, rest, session):
        session.request.side_effect = requests.ConnectionError("reset")
        with pytest.raises(UpstreamApiError) as ei:
            rest.place_order(book="usd_mxn", side="buy", type="market", minor="1")
        assert ei.value.status is None
        assert ei.value.is_transient
        assert session.request.call_count == 1
