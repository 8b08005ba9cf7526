"""Prefixed, time-ordered ids for service requests, offers and payments.

    req_<n>   ofr_<n>   pay_<n>

``n`` is a snowflake: millisecond timestamp | machine id | per-ms sequence.
Ids therefore sort by creation time, which the list endpoints rely on for
``id < cursor`` pagination. Give each process its own ID_MACHINE_ID.
"""

import threading
import time

from config.settings import settings

_EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
_MACHINE_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1
MAX_MACHINE_ID = (1 << _MACHINE_BITS) - 1


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeIdGenerator:
    def __init__(self, machine_id: int = 0) -> None:
        if not 0 <= machine_id <= MAX_MACHINE_ID:
            raise ValueError(f"machine_id must be 0-{MAX_MACHINE_ID}, got {machine_id}")
        self._machine_id = machine_id
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            # A clock that steps backwards keeps issuing on the last timestamp
            ms = max(_now_ms(), self._last_ms)
            if ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    while ms <= self._last_ms:
                        ms = _now_ms()
            else:
                self._sequence = 0
            self._last_ms = ms
            return (
                (ms - _EPOCH_MS) << (_MACHINE_BITS + _SEQUENCE_BITS)
                | self._machine_id << _SEQUENCE_BITS
                | self._sequence
            )

    def next_id(self, prefix: str = "") -> str:
        value = self.next_int()
        return f"{prefix}_{value}" if prefix else str(value)


_generator = SnowflakeIdGenerator(settings.ID_MACHINE_ID)


def generate_id(prefix: str) -> str:
    return _generator.next_id(prefix)
