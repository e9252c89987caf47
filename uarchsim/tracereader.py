"""Readers that turn trace files into a stream of instructions."""

from __future__ import annotations

import bz2
import copy
import gzip
import lzma
from collections import deque
from typing import IO, Any, Callable, Iterator

from .instruction import Instruction
from .repeatable import Repeatable
from .trace import CloudsuiteInstr, InputInstr

_RECORDS_PER_READ = 256


def apply_branch_target(branch: Instruction, target: Instruction) -> Instruction:
    """Return a copy of ``branch`` whose target is the next instruction's IP if taken."""
    result = copy.copy(branch)
    result.destination_registers = list(branch.destination_registers)
    result.source_registers = list(branch.source_registers)
    result.destination_memory = list(branch.destination_memory)
    result.source_memory = list(branch.source_memory)
    result.registers_instrs_depend_on_me = list(branch.registers_instrs_depend_on_me)
    result.branch_target = target.ip if (branch.is_branch and branch.branch_taken) else 0
    return result


def open_trace(path: str) -> IO[bytes]:
    """Open a trace file, decompressing according to its name's suffix."""
    if path.endswith("gz"):
        return gzip.open(path, "rb")
    if path.endswith("xz"):
        return lzma.open(path, "rb")
    if path.endswith("bz2"):
        return bz2.open(path, "rb")
    return open(path, "rb")


class TraceReader:
    """Gives each instruction from a source a globally unique id."""

    instr_unique_id = 0

    def __init__(self, source: Callable[[], Instruction]) -> None:
        self._source = source

    def __call__(self) -> Instruction:
        instr = self._source()
        instr.instr_id = TraceReader.instr_unique_id
        TraceReader.instr_unique_id += 1
        return instr

    def eof(self) -> bool:
        """True once the underlying source has nothing more to give."""
        eof = getattr(self._source, "eof", None)
        return bool(eof()) if callable(eof) else False


def _split(data: bytes, size: int) -> Iterator[bytes]:
    for offset in range(0, len(data) - size + 1, size):
        yield data[offset : offset + size]


class BulkTraceReader:
    """Reads trace records in chunks and resolves branch targets from the following record."""

    def __init__(self, cpu: int, path: str, cloudsuite: bool = False) -> None:
        self.cpu = cpu
        self.path = path
        self._record_type: Any = CloudsuiteInstr if cloudsuite else InputInstr
        self._stream = open_trace(path)
        self._buffer: deque = deque()
        self._exhausted = False

    def _refill(self) -> None:
        size = self._record_type.SIZE
        wanted = size * _RECORDS_PER_READ
        data = self._stream.read(wanted)
        self._buffer.extend(
            Instruction.from_trace(self.cpu, self._record_type.from_bytes(chunk)) for chunk in _split(data, size)
        )
        if len(data) < wanted:
            self._exhausted = True
            self._stream.close()

    def __call__(self) -> Instruction:
        while len(self._buffer) < 2 and not self._exhausted:
            self._refill()
        if not self._buffer:
            raise EOFError(f"trace {self.path} has no more instructions")

        instr = self._buffer.popleft()
        if self._buffer:
            return apply_branch_target(instr, self._buffer[0])
        instr.branch_target = 0
        return instr

    def eof(self) -> bool:
        """True once every record of the file has been returned."""
        return self._exhausted and not self._buffer


def get_tracereader(fname: str, cpu: int, is_cloudsuite: bool, repeat: bool) -> TraceReader:
    """Build a reader for ``fname``, restarting at the end of the file when ``repeat`` is set."""
    if repeat:
        return TraceReader(Repeatable(BulkTraceReader, cpu, fname, is_cloudsuite))
    return TraceReader(BulkTraceReader(cpu, fname, is_cloudsuite))