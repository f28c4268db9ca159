"""Snowflake-style ID generator for business IDs (match_id, bet_id).

Generates monotonically increasing, unique string IDs. Every match and bet id
in the system has this one shape; validate_entity_id() is the boundary check.
"""

import re
import threading
import time

from config.settings import settings
from src.ws_common.errors import ValidationError

_ENTITY_ID_RE = re.compile(r"[0-9]{1,19}")
# Ids are stored and compared as BIGINT
MAX_ENTITY_ID = 2**63 - 1
_USER_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")


class SnowflakeIdGenerator:
    """Simple snowflake ID generator.

    Layout (64 bits):
      - 41 bits: millisecond timestamp (since custom epoch)
      - 10 bits: machine_id (0-1023)
      - 12 bits: sequence (0-4095 per millisecond)
    """

    _EPOCH_MS = 1_700_000_000_000  # 2023-11-14 approx
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_timestamp_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            ts = self._current_ms()
            if ts == self._last_timestamp_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    ts = self._wait_next_ms(ts)
            else:
                self._sequence = 0

            self._last_timestamp_ms = ts
            id_int = (
                ((ts - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(id_int)

    def _current_ms(self) -> int:
        return int(time.time() * 1000)

    def _wait_next_ms(self, last_ts: int) -> int:
        ts = self._current_ms()
        while ts <= last_ts:
            ts = self._current_ms()
        return ts


_default_generator = SnowflakeIdGenerator(settings.WORKER_ID)


def generate_id() -> str:
    """Generate a unique snowflake-style string ID using the module-level default generator."""
    return _default_generator.next_id()


def validate_entity_id(value: str, kind: str) -> str:
    """Reject anything that is not a snowflake decimal string. Returns the value unchanged."""
    if (
        not isinstance(value, str)
        or not _ENTITY_ID_RE.fullmatch(value)
        or int(value) > MAX_ENTITY_ID
    ):
        raise ValidationError(f"{kind} id must be a decimal string within BIGINT range")
    return value


def validate_user_id(value: str) -> str:
    """User ids are opaque strings from the auth layer; only the shape is checked."""
    if not isinstance(value, str) or not _USER_ID_RE.fullmatch(value):
        raise ValidationError("user id must be 1-64 characters of [A-Za-z0-9_-]")
    return value
