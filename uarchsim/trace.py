"""Binary trace record formats."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar, List, Sequence

REG_STACK_POINTER = 6
REG_FLAGS = 25
REG_INSTRUCTION_POINTER = 26

NUM_INSTR_DESTINATIONS_SPARC = 4
NUM_INSTR_DESTINATIONS = 2
NUM_INSTR_SOURCES = 4


def _padded(values: Sequence[int], length: int, name: str) -> List[int]:
    if len(values) > length:
        raise ValueError(f"{name} holds {len(values)} entries, at most {length} allowed")
    return [*values, *([0] * (length - len(values)))]


def _check_length(data: bytes, size: int) -> None:
    if len(data) != size:
        raise ValueError(f"expected a record of {size} bytes, got {len(data)}")


@dataclass
class InputInstr:
    """The standard trace record."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct(
        f"<QBB{NUM_INSTR_DESTINATIONS}B{NUM_INSTR_SOURCES}B{NUM_INSTR_DESTINATIONS}Q{NUM_INSTR_SOURCES}Q"
    )
    SIZE: ClassVar[int] = _STRUCT.size
    NUM_DESTINATIONS: ClassVar[int] = NUM_INSTR_DESTINATIONS

    ip: int = 0
    is_branch: int = 0
    branch_taken: int = 0
    destination_registers: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_DESTINATIONS)
    source_registers: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_SOURCES)
    destination_memory: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_DESTINATIONS)
    source_memory: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_SOURCES)

    def to_bytes(self) -> bytes:
        """Pack the record in its on-disk layout."""
        return self._STRUCT.pack(
            self.ip,
            int(self.is_branch),
            int(self.branch_taken),
            *_padded(self.destination_registers, NUM_INSTR_DESTINATIONS, "destination_registers"),
            *_padded(self.source_registers, NUM_INSTR_SOURCES, "source_registers"),
            *_padded(self.destination_memory, NUM_INSTR_DESTINATIONS, "destination_memory"),
            *_padded(self.source_memory, NUM_INSTR_SOURCES, "source_memory"),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "InputInstr":
        """Unpack a record from its on-disk layout."""
        _check_length(data, cls.SIZE)
        ip, is_branch, taken, *rest = cls._STRUCT.unpack(data)
        d, s = NUM_INSTR_DESTINATIONS, NUM_INSTR_SOURCES
        return cls(
            ip=ip,
            is_branch=is_branch,
            branch_taken=taken,
            destination_registers=rest[:d],
            source_registers=rest[d : d + s],
            destination_memory=rest[d + s : 2 * d + s],
            source_memory=rest[2 * d + s :],
        )


@dataclass
class CloudsuiteInstr:
    """The cloudsuite trace record, which carries address-space identifiers."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct(
        f"<QBB{NUM_INSTR_DESTINATIONS_SPARC}B{NUM_INSTR_SOURCES}B6x"
        f"{NUM_INSTR_DESTINATIONS_SPARC}Q{NUM_INSTR_SOURCES}Q2B6x"
    )
    SIZE: ClassVar[int] = _STRUCT.size
    NUM_DESTINATIONS: ClassVar[int] = NUM_INSTR_DESTINATIONS_SPARC

    ip: int = 0
    is_branch: int = 0
    branch_taken: int = 0
    destination_registers: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_DESTINATIONS_SPARC)
    source_registers: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_SOURCES)
    destination_memory: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_DESTINATIONS_SPARC)
    source_memory: List[int] = field(default_factory=lambda: [0] * NUM_INSTR_SOURCES)
    asid: List[int] = field(default_factory=lambda: [0, 0])

    def to_bytes(self) -> bytes:
        """Pack the record in its on-disk layout."""
        if len(self.asid) != 2:
            raise ValueError("asid must hold exactly two entries")
        return self._STRUCT.pack(
            self.ip,
            int(self.is_branch),
            int(self.branch_taken),
            *_padded(self.destination_registers, NUM_INSTR_DESTINATIONS_SPARC, "destination_registers"),
            *_padded(self.source_registers, NUM_INSTR_SOURCES, "source_registers"),
            *_padded(self.destination_memory, NUM_INSTR_DESTINATIONS_SPARC, "destination_memory"),
            *_padded(self.source_memory, NUM_INSTR_SOURCES, "source_memory"),
            *self.asid,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "CloudsuiteInstr":
        """Unpack a record from its on-disk layout."""
        _check_length(data, cls.SIZE)
        ip, is_branch, taken, *rest = cls._STRUCT.unpack(data)
        d, s = NUM_INSTR_DESTINATIONS_SPARC, NUM_INSTR_SOURCES
        return cls(
            ip=ip,
            is_branch=is_branch,
            branch_taken=taken,
            destination_registers=rest[:d],
            source_registers=rest[d : d + s],
            destination_memory=rest[d + s : 2 * d + s],
            source_memory=rest[2 * d + s : 2 * d + 2 * s],
            asid=rest[2 * d + 2 * s :],
        )