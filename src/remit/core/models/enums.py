from __future__ import annotations
from enum import Enum

class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"

class OrderKind(str, Enum):
    MARKET = "market"
    LIMIT = "limit"

class Denomination(str, Enum):
    MAJOR = "major"
    MINOR = "minor"

class OrderStatus(str, Enum):
    OPEN = "open"
    PARTIAL_FILL = "partial-fill"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"

class ClaimStatus(str, Enum):
    PENDING_USER_START = "pending_user_start"
    PENDING_INVITE = "pending_invite"
    PENDING_DEPOSIT = "pending_deposit"
    PENDING_CLAIM = "pending_claim"
    CLAIMING = "claiming"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class Role(str, Enum):
    SENDER = "sender"
    RECIPIENT = "recipient"
    SYSTEM = "system"

class AccountType(str, Enum):
    CVU = "cvu"
    CBU = "cbu"
    CLABE = "clabe"
    WALLET = "wallet"
