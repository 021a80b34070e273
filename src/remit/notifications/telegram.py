# src/remit/notifications/telegram.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional

import requests

log = logging.getLogger("remit.notifications.telegram")

TELEGRAM_MAX_LEN = 3900  # safe margin under the 4096 hard limit


@dataclass(frozen=True)
class TelegramTarget:
    bot_token: str
    chat_id: str


def _env(name: str) -> str:
    v = os.getenv(name)
    return v.strip() if isinstance(v, str) else ""


def target_from_env(
    token_env: str = "TELEGRAM_BOT_TOKEN",
    chat_env: str = "TELEGRAM_CHAT_ID",
) -> Optional[TelegramTarget]:
    token, chat = _env(token_env), _env(chat_env)
    if not token or not chat:
        return None
    return TelegramTarget(bot_token=token, chat_id=chat)


def split_long_message(text: str, max_len: int = TELEGRAM_MAX_LEN) -> List[str]:
    """
    Split text under the Telegram limit.
    Cuts on blank lines first, then on single lines, then hard-cuts a line.
    """
    s = (text or "").strip()
    if not s:
        return []
    if len(s) <= max_len:
        return [s]

    parts: List[str] = []
    buf = ""

    def flush() -> None:
        nonlocal buf
        if buf.strip():
            parts.append(buf.strip())
        buf = ""

    for block in s.split("\n\n"):
        joined = f"{buf}\n\n{block}" if buf else block
        if len(joined) <= max_len:
            buf = joined
            continue

        flush()
        if len(block) <= max_len:
            buf = block
            continue

        for line in block.splitlines():
            while len(line) > max_len:
                flush()
                parts.append(line[:max_len])
                line = line[max_len:]
            joined = f"{buf}\n{line}" if buf else line
            if len(joined) <= max_len:
                buf = joined
            else:
                flush()
                buf = line

    flush()
    return parts


class TelegramNotifier:
    """
    Operator alerts. Best effort: a failed send is logged and never
    propagates into the settlement pipeline.
    """

    def __init__(
        self,
        target: Optional[TelegramTarget],
        *,
        enabled: bool = True,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.target = target
        self.enabled = bool(enabled)
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    def send(self, text: str) -> bool:
        if not self.enabled:
            return False
        if self.target is None:
            log.warning("Telegram target not configured (missing token/chat_id)")
            return False

        chunks = split_long_message(text)
        if not chunks:
            return False

        url = f"https://api.telegram.org/bot{self.target.bot_token}/sendMessage"
        ok = True
        for chunk in chunks:
            payload = {
                "chat_id": self.target.chat_id,
                "text": chunk,
                "disable_web_page_preview": True,
            }
            try:
                r = self.session.post(url, json=payload, timeout=self.timeout)
            except requests.RequestException:
                log.exception("Telegram send exception")
                return False
            if r.status_code != 200:
                log.error("Telegram send failed: %s %s", r.status_code, r.text[:300])
                ok = False
        return ok

    def notify_claim_failed(self, claim: Any, error: dict[str, Any]) -> bool:
        lines = [
            "⚠️ Claim FAILED",
            f"id: {claim.id}",
            f"amount: {claim.amount} {claim.currency}",
            f"error: {error.get('type')}: {error.get('message')}",
        ]
        stranded = error.get("stranded_amount")
        if stranded:
            lines.append(f"stranded: {stranded} {str(error.get('stranded_currency') or '').upper()}")
        if error.get("order_id"):
            lines.append(f"order: {error['order_id']}")
        return self.send("\n".join(lines))
