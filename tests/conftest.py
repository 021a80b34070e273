"""
pytest configuration and fixtures

Path bootstrap: ensures `src.remit...` imports work from any CWD.
Fakes below stand in for the exchange, the payout rail and the record store;
no test touches the network or a database.
"""

import copy
import itertools
import sys
import threading
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.remit.core.models.claim import BankDetails, ClaimTransaction  # noqa: E402
from src.remit.core.models.enums import (  # noqa: E402
    ClaimStatus,
    OrderKind,
    OrderSide,
    OrderStatus,
    WithdrawalStatus,
)
from src.remit.core.models.order import Balance, Fill, Order, Ticker  # noqa: E402
from src.remit.core.models.withdrawal import MethodDescriptor, Withdrawal  # noqa: E402
from src.remit.core.trading.poller import CompletionPoller  # noqa: E402
from src.remit.data.storage.base import ClaimStore  # noqa: E402
from src.remit.exchanges.base.exchange import ExchangeAdapter  # noqa: E402
from src.remit.exchanges.base.rail import RailAdapter  # noqa: E402


VALID_CVU = "0000003100010000000001"      # 22 digits
VALID_CLABE = "012345678901234567"        # 18 digits
VALID_WALLET = "0x" + "ab" * 20


# ----------------------------------------------------------------------
# time
# ----------------------------------------------------------------------
class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += float(dt)


class FakeEvent:
    """threading.Event stand-in: wait() advances the fake clock instead of sleeping."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.waits: list[float] = []
        self._set = False

    def is_set(self) -> bool:
        return self._set

    def set(self) -> None:
        self._set = True

    def wait(self, timeout=None) -> bool:
        self.waits.append(float(timeout or 0.0))
        self.clock.advance(timeout or 0.0)
        return self._set


# ----------------------------------------------------------------------
# builders
# ----------------------------------------------------------------------
def make_fill(order_id, book, side, major, minor, fee=0.0, fee_currency=None):
    major_ccy, minor_ccy = book.split("_")
    return Fill(
        order_id=order_id,
        book=book,
        side=OrderSide(side),
        major=float(major),
        major_currency=major_ccy,
        minor=float(minor),
        minor_currency=minor_ccy,
        fee_amount=float(fee),
        fee_currency=fee_currency,
    )


def make_claim(
    *,
    claim_id="claim-1",
    amount=1000.0,
    currency="ARS",
    status=ClaimStatus.CLAIMING,
    bank_details=None,
):
    if bank_details is None and currency.upper() == "ARS":
        bank_details = BankDetails(account_holder_name="Ana Gomez", account_type="cvu", cvu=VALID_CVU)
    if bank_details is None and currency.upper() == "MXN":
        bank_details = BankDetails(account_holder_name="Luis Perez", account_type="clabe", clabe=VALID_CLABE)
    return ClaimTransaction(
        id=claim_id,
        user_id="user-1",
        amount=float(amount),
        currency=currency.upper(),
        status=ClaimStatus(status),
        bank_details=bank_details,
    )


# ----------------------------------------------------------------------
# exchange
# ----------------------------------------------------------------------
class FakeExchange(ExchangeAdapter):
    """
    Scripted by book:
      plans[book] = {"statuses": [...], "fills": [[Fill...] | Exception, ...]}
    The last status / fills entry repeats once the script is exhausted.
    Fills are built with order_id "?" and re-stamped with the placed order id.
    """

    name = "fake"

    def __init__(self, balances=None, tickers=None):
        self.balances = dict(balances or {})
        self.tickers = list(tickers or [])
        self.plans: dict[str, dict] = {}
        self.placed: list[dict] = []
        self.status_calls = 0
        self.fill_calls = 0
        self._ids = itertools.count(1)
        self._orders: dict[str, dict] = {}

    def plan(self, book, *, statuses=None, fills=None):
        self.plans[book] = {
            "statuses": list(statuses or [OrderStatus.COMPLETED]),
            "fills": list(fills if fills is not None else [[]]),
        }

    def get_balances(self):
        return [Balance(currency=c, available=v, total=v) for c, v in self.balances.items()]

    def place_order(self, book, side, kind, amount, denomination, price=None):
        oid = f"oid{next(self._ids)}"
        self.placed.append(dict(
            oid=oid, book=book, side=OrderSide(side), kind=OrderKind(kind),
            amount=amount, denomination=denomination, price=price,
        ))
        plan = copy.copy(self.plans.get(book) or {"statuses": [OrderStatus.COMPLETED], "fills": [[]]})
        self._orders[oid] = {
            "book": book, "side": OrderSide(side), "kind": OrderKind(kind),
            "statuses": list(plan["statuses"]), "fills": list(plan["fills"]),
        }
        return Order(order_id=oid, book=book, side=OrderSide(side), kind=OrderKind(kind), status=OrderStatus.OPEN)

    def get_order_status(self, order_id):
        self.status_calls += 1
        o = self._orders[order_id]
        st = o["statuses"].pop(0) if len(o["statuses"]) > 1 else o["statuses"][0]
        if isinstance(st, Exception):
            raise st
        return Order(order_id=order_id, book=o["book"], side=o["side"], kind=o["kind"], status=OrderStatus(st))

    def get_order_fills(self, order_id):
        self.fill_calls += 1
        o = self._orders[order_id]
        item = o["fills"].pop(0) if len(o["fills"]) > 1 else o["fills"][0]
        if isinstance(item, Exception):
            raise item
        return [
            Fill(
                order_id=order_id, book=f.book, side=f.side, major=f.major, major_currency=f.major_currency,
                minor=f.minor, minor_currency=f.minor_currency, fee_amount=f.fee_amount,
                fee_currency=f.fee_currency,
            )
            for f in item
        ]

    def get_tickers(self):
        return list(self.tickers)


# ----------------------------------------------------------------------
# rail
# ----------------------------------------------------------------------
class FakeRail(RailAdapter):
    name = "fake"

    def __init__(self, statuses=None, submit_error=None):
        self.requests = []
        self.statuses = list(statuses or [WithdrawalStatus.COMPLETE])
        self.submit_error = submit_error
        self._ids = itertools.count(1)

    def submit_withdrawal(self, request):
        self.requests.append(request)
        if self.submit_error is not None:
            raise self.submit_error
        return Withdrawal(
            withdrawal_id=f"wid{next(self._ids)}",
            currency=request.currency,
            amount=float(request.amount),
            status=WithdrawalStatus.PENDING,
            asset=request.asset,
            method=request.method,
            network=request.network,
            protocol=request.protocol,
            destination=request.destination,
            origin_id=request.origin_id,
        )

    def get_withdrawal_status(self, withdrawal_id):
        st = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return Withdrawal(withdrawal_id=withdrawal_id, currency="ars", amount=0.0, status=WithdrawalStatus(st))

    def get_withdrawal_methods(self, currency):
        return [MethodDescriptor(method="bind", network="coelsa", protocol="cvu")]


# ----------------------------------------------------------------------
# store
# ----------------------------------------------------------------------
class InMemoryClaimStore(ClaimStore):
    def __init__(self):
        self.rows: dict[str, ClaimTransaction] = {}
        self.history: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def exec_ddl(self, ddl_sql):
        pass

    def insert(self, claim):
        with self._lock:
            self.rows[claim.id] = copy.deepcopy(claim)

    def get(self, claim_id):
        with self._lock:
            c = self.rows.get(claim_id)
            return copy.deepcopy(c) if c else None

    def list_by_status(self, status, *, limit=100):
        with self._lock:
            return [copy.deepcopy(c) for c in self.rows.values() if c.status == ClaimStatus(status)][:limit]

    def update_status(self, claim_id, status, metadata_patch=None):
        with self._lock:
            c = self.rows.get(claim_id)
            if c is None:
                return
            self.history.append((claim_id, c.status.value, ClaimStatus(status).value))
            c.status = ClaimStatus(status)
            c.metadata.update(metadata_patch or {})

    def compare_and_set_status(self, claim_id, expected, status, metadata_patch=None, *, bank_details=None):
        with self._lock:
            c = self.rows.get(claim_id)
            if c is None or c.status != ClaimStatus(expected):
                return False
            self.history.append((claim_id, c.status.value, ClaimStatus(status).value))
            c.status = ClaimStatus(status)
            c.metadata.update(metadata_patch or {})
            if bank_details is not None:
                c.bank_details = BankDetails.from_dict(bank_details)
            return True


# ----------------------------------------------------------------------
# fixtures
# ----------------------------------------------------------------------
@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stop_event(clock):
    return FakeEvent(clock)


@pytest.fixture
def exchange():
    return FakeExchange(
        balances={"mxn": 100_000.0, "ars": 5_000_000.0, "usd": 0.0, "mxnb": 10_000.0},
        tickers=[
            Ticker(book="usd_mxn", bid=19.9, ask=20.1),
            Ticker(book="usd_ars", bid=995.0, ask=1005.0),
        ],
    )


@pytest.fixture
def rail():
    return FakeRail()


@pytest.fixture
def store():
    return InMemoryClaimStore()


@pytest.fixture
def poller(exchange, rail, clock, stop_event):
    return CompletionPoller(
        exchange,
        rail=rail,
        interval_sec=1.0,
        backoff_base_sec=1.0,
        backoff_cap_sec=5.0,
        stop_event=stop_event,
        clock=clock,
    )


@pytest.fixture
def mxn_to_ars_plan(exchange):
    """1000 MXN -> 52.3 USD -> 52300 ARS, fees on both legs."""
    exchange.plan(
        "usd_mxn",
        statuses=[OrderStatus.OPEN, OrderStatus.COMPLETED],
        fills=[[
            make_fill("?", "usd_mxn", "buy", 30.0, 573.6, fee=0.03, fee_currency="usd"),
            make_fill("?", "usd_mxn", "buy", 22.3, 426.4, fee=0.02, fee_currency="usd"),
        ]],
    )
    exchange.plan(
        "usd_ars",
        statuses=[OrderStatus.COMPLETED],
        fills=[[make_fill("?", "usd_ars", "sell", 52.3, 52300.0, fee=52.3, fee_currency="ars")]],
    )
    return exchange


@pytest.fixture
def fill_factory():
    return make_fill


@pytest.fixture
def claim_factory():
    return make_claim


@pytest.fixture
def fake_exchange_cls():
    return FakeExchange


@pytest.fixture
def fake_rail_cls():
    return FakeRail
