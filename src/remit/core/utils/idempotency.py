from __future__ import annotations
import secrets
import time

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def _random_suffix(n: int) -> str:
    return "".join(secrets.choice(_B36) for _ in range(n))


def make_origin_id(prefix: str = "claim", *, max_len: int = 40) -> str:
    """Withdrawal idempotency token: <prefix>_<base36 ms>_<9 random chars>."""
    raw = f"{prefix}_{to_base36(int(time.time() * 1000))}_{_random_suffix(9)}"
    return raw[:max_len]


def make_trade_id() -> str:
    return f"trade_{int(time.time() * 1000)}_{_random_suffix(9)}"
