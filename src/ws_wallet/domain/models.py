"""Domain models for ws_wallet — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Wallet:
    user_id: str
    balance: int   # cents
    version: int


@dataclass
class Transaction:
    """Append-only money movement. Never updated or deleted once written."""

    id: int                          # BIGSERIAL
    user_id: str
    tx_type: str                     # TransactionType value
    amount: int                      # cents, positive=credit negative=debit
    balance_after: int               # cents, wallet balance snapshot after op
    status: str
    reference_type: str              # ReferenceType value
    reference_id: str                # match_id or bet_id
    description: str | None = None
    created_at: datetime | None = None
