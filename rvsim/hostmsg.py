"""Messages the simulated CPU sends to the host through the ``mtohost`` CSR."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class CpuToHostType(IntEnum):
    """Kind of message carried in the upper half of an ``mtohost`` word."""

    EXIT_CODE = 0
    PRINT_CHAR = 1
    PRINT_INT_LOW = 2
    PRINT_INT_HIGH = 3


@dataclass(frozen=True)
class HostMessage:
    """A decoded ``mtohost`` word: a 16-bit type and a 16-bit payload.

    ``type`` is a :class:`CpuToHostType` when the value is known, otherwise
    the raw 16-bit number.
    """

    type: CpuToHostType | int
    data: int

    @classmethod
    def from_payload(cls, payload: int) -> HostMessage:
        """Split a 32-bit word into type (high half) and data (low half)."""
        raw_type = (payload >> 16) & 0xFFFF
        try:
            kind: CpuToHostType | int = CpuToHostType(raw_type)
        except ValueError:
            kind = raw_type
        return cls(type=kind, data=payload & 0xFFFF)

    def payload(self) -> int:
        """Pack the message back into a 32-bit word."""
        return ((int(self.type) & 0xFFFF) << 16) | (self.data & 0xFFFF)