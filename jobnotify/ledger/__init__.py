"""Bounded, durable record of listing ids that were already notified."""

from .service import (
    DEFAULT_CAPACITY,
    LEDGER_KEY,
    LedgerError,
    NotificationLedger,
    append_bounded,
    diff_new,
)

__all__ = [
    "NotificationLedger",
    "LedgerError",
    "diff_new",
    "append_bounded",
    "LEDGER_KEY",
    "DEFAULT_CAPACITY",
]
