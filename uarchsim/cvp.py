"""Conversion of CVP-1 value-prediction traces into the simulator's trace format."""

from __future__ import annotations

import gzip
import io
import lzma
import os
import struct
import sys
from collections import Counter
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from enum import IntEnum
from typing import IO, ContextManager, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from .trace import (
    NUM_INSTR_DESTINATIONS,
    NUM_INSTR_SOURCES,
    REG_FLAGS,
    REG_INSTRUCTION_POINTER,
    REG_STACK_POINTER,
    InputInstr,
)

_MASK64 = (1 << 64) - 1
_U64 = struct.Struct("<Q")
_U128 = struct.Struct("<QQ")

_XZ_MAGIC = b"\xfd7zXZ\x00"
_GZ_MAGIC = b"\x1f\x8b"

_PAGE_SHIFT = 12
_PAGE_OFFSET_MASK = 0xFFF
_FIRST_REMAP_PAGE = 0x1000

_LINK_REGISTER = 30
_REG_AX = 56


class InstClass(IntEnum):
    ALU = 0
    LOAD = 1
    STORE = 2
    COND_BRANCH = 3
    UNCOND_DIRECT_BRANCH = 4
    UNCOND_INDIRECT_BRANCH = 5
    FP = 6
    SLOW_ALU = 7
    UNDEF = 8


class OpType(IntEnum):
    OPTYPE_OP = 2
    OPTYPE_RET_UNCOND = 3
    OPTYPE_JMP_DIRECT_UNCOND = 4
    OPTYPE_JMP_INDIRECT_UNCOND = 5
    OPTYPE_CALL_DIRECT_UNCOND = 6
    OPTYPE_CALL_INDIRECT_UNCOND = 7
    OPTYPE_RET_COND = 8
    OPTYPE_JMP_DIRECT_COND = 9
    OPTYPE_JMP_INDIRECT_COND = 10
    OPTYPE_CALL_DIRECT_COND = 11
    OPTYPE_CALL_INDIRECT_COND = 12
    OPTYPE_ERROR = 13
    OPTYPE_MAX = 14


_BRANCH_CLASSES = frozenset(
    {InstClass.COND_BRANCH, InstClass.UNCOND_DIRECT_BRANCH, InstClass.UNCOND_INDIRECT_BRANCH}
)
_MEMORY_CLASSES = frozenset({InstClass.LOAD, InstClass.STORE})


@dataclass
class CvpRecord:
    """One record of a CVP-1 trace."""

    pc: int
    inst_class: InstClass
    ea: int = 0
    access_size: int = 0
    taken: int = 0
    target: int = 0
    input_regs: List[int] = field(default_factory=list)
    output_regs: List[int] = field(default_factory=list)
    output_values: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def is_branch(self) -> bool:
        return self.inst_class in _BRANCH_CLASSES


def _log(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


def _read_exact(stream: IO[bytes], size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ValueError("truncated CVP trace record")
    return data


def _read_byte(stream: IO[bytes]) -> int:
    return _read_exact(stream, 1)[0]


def _read_u64(stream: IO[bytes]) -> int:
    return _U64.unpack(_read_exact(stream, 8))[0]


def read_record(stream: IO[bytes]) -> Optional[CvpRecord]:
    """Read one record, returning None at the end of the stream."""
    head = stream.read(8)
    if len(head) < 8:
        return None
    (pc,) = _U64.unpack(head)

    code = _read_byte(stream)
    try:
        inst_class = InstClass(code)
    except ValueError:
        raise ValueError(f"unknown instruction class {code}") from None

    record = CvpRecord(pc=pc, inst_class=inst_class)
    if inst_class in _MEMORY_CLASSES:
        record.ea = _read_u64(stream)
        record.access_size = _read_byte(stream)
    elif inst_class in _BRANCH_CLASSES:
        record.taken = _read_byte(stream)
        if record.taken:
            record.target = _read_u64(stream)
        else:
            record.target = (pc + 4) & _MASK64
            if inst_class is not InstClass.COND_BRANCH:
                raise ValueError(f"unconditional branch at {pc:#x} is recorded as not taken")

    record.input_regs = list(_read_exact(stream, _read_byte(stream)))
    record.output_regs = list(_read_exact(stream, _read_byte(stream)))

    for reg in record.output_regs:
        if reg <= 31 or reg == 64:
            record.output_values.append((_read_u64(stream), 0))
        elif 32 <= reg < 64:
            record.output_values.append(_U128.unpack(_read_exact(stream, 16)))
        else:
            raise ValueError(f"unknown output register {reg}")

    return record


def iter_records(stream: IO[bytes]) -> Iterator[CvpRecord]:
    """Yield every record of the stream in order."""
    while (record := read_record(stream)) is not None:
        yield record


@contextmanager
def open_trace(path: Union[str, os.PathLike]) -> Iterator[IO[bytes]]:
    """Open a CVP trace, choosing decompression from the file's magic number.

    The name "-" stands for standard input, which is left open afterwards.
    """
    path = os.fspath(path)
    if path == "-":
        _log("reading from standard input\n")
        yield sys.stdin.buffer
        return

    with open(path, "rb") as probe:
        magic = probe.read(6)
    if len(magic) < 6:
        raise ValueError(f"{path} is too short to be a trace")

    if magic == _XZ_MAGIC:
        _log(f'opening xz file "{path}"\n')
        opener = lzma.open
    elif magic[:2] == _GZ_MAGIC:
        _log(f'opening gz file "{path}"\n')
        opener = gzip.open
    else:
        _log(f'opening file "{path}"\n')
        opener = open

    with opener(path, "rb") as stream:
        yield stream


def _trace_source(source: Union[str, os.PathLike, IO[bytes]]) -> ContextManager[IO[bytes]]:
    if isinstance(source, (str, os.PathLike)):
        return open_trace(source)
    return nullcontext(source)


def classify_branch(record: CvpRecord) -> OpType:
    """Decide which kind of operation a record describes."""
    if not record.is_branch:
        return OpType.OPTYPE_OP
    if record.inst_class is InstClass.COND_BRANCH:
        return OpType.OPTYPE_JMP_DIRECT_COND
    if not record.target:
        raise ValueError(f"unconditional branch at {record.pc:#x} has no target")

    indirect = record.inst_class is InstClass.UNCOND_INDIRECT_BRANCH
    if record.output_regs == [_LINK_REGISTER]:
        op = OpType.OPTYPE_CALL_INDIRECT_UNCOND if indirect else OpType.OPTYPE_CALL_DIRECT_UNCOND
    else:
        op = OpType.OPTYPE_JMP_INDIRECT_UNCOND if indirect else OpType.OPTYPE_JMP_DIRECT_UNCOND

    if record.input_regs == [_LINK_REGISTER]:
        op = OpType.OPTYPE_RET_UNCOND
    return op


class PageRemapper:
    """Moves data addresses off pages that also hold code."""

    def __init__(self, code_pages: Iterable[int], data_pages: Iterable[int]) -> None:
        self.code_pages: Set[int] = set(code_pages)
        self.data_pages: Set[int] = set(data_pages)
        self.remapped: Dict[int, int] = {}
        self.bump_page = _FIRST_REMAP_PAGE
        self.num_allocs = 0

    def transform(self, address: int) -> int:
        """Return ``address`` moved to a page not used for code, keeping its page offset."""
        page = address >> _PAGE_SHIFT
        new_page = page
        if page in self.code_pages:
            new_page = self.remapped.get(page, 0)
            if new_page == 0:
                self.num_allocs += 1
                _log(f"[{self.num_allocs}]")
                new_page = self.bump_page
                while new_page in self.code_pages or new_page in self.data_pages:
                    new_page += 1
                self.bump_page = new_page + 1
                self.remapped[page] = new_page
        return ((new_page << _PAGE_SHIFT) | (address & _PAGE_OFFSET_MASK)) & _MASK64


def preprocess(path: Union[str, os.PathLike, IO[bytes]]) -> Tuple[Set[int], Set[int]]:
    """Collect the sets of code pages and data pages touched by a trace."""
    _log("preprocessing to find code and data pages...\n")
    code_pages: Set[int] = set()
    data_pages: Set[int] = set()
    with _trace_source(path) as stream:
        for count, record in enumerate(iter_records(stream), 1):
            code_pages.add(record.pc >> _PAGE_SHIFT)
            if record.inst_class in _MEMORY_CLASSES:
                data_pages.add(record.ea >> _PAGE_SHIFT)
            if count % 10_000_000 == 0:
                _log(".")
                if count % 600_000_000 == 0:
                    _log("\n")
    _log(f"{len(code_pages)} code pages, {len(data_pages)} data pages\n")
    return code_pages, data_pages


# destination registers, source registers, and whether the recorded direction is kept
_BRANCH_SHAPES: Dict[OpType, Tuple[Sequence[int], Sequence[int], bool]] = {
    OpType.OPTYPE_JMP_DIRECT_UNCOND: ((REG_INSTRUCTION_POINTER,), (), True),
    OpType.OPTYPE_JMP_DIRECT_COND: ((REG_INSTRUCTION_POINTER,), (REG_INSTRUCTION_POINTER, REG_FLAGS), True),
    OpType.OPTYPE_CALL_INDIRECT_UNCOND: (
        (REG_INSTRUCTION_POINTER, REG_STACK_POINTER),
        (REG_INSTRUCTION_POINTER, REG_STACK_POINTER, _REG_AX),
        False,
    ),
    OpType.OPTYPE_CALL_DIRECT_UNCOND: (
        (REG_INSTRUCTION_POINTER, REG_STACK_POINTER),
        (REG_INSTRUCTION_POINTER, REG_STACK_POINTER),
        False,
    ),
    OpType.OPTYPE_JMP_INDIRECT_UNCOND: ((REG_INSTRUCTION_POINTER,), (_REG_AX,), False),
    OpType.OPTYPE_RET_UNCOND: ((REG_INSTRUCTION_POINTER, REG_STACK_POINTER), (REG_STACK_POINTER,), False),
}

_REGISTER_RENAMES = {
    REG_INSTRUCTION_POINTER: 64,
    REG_STACK_POINTER: 65,
    REG_FLAGS: 66,
    0: 67,
}


def _map_register(reg: int) -> int:
    return _REGISTER_RENAMES.get(reg, reg)


def _pad(values: Sequence[int], length: int) -> List[int]:
    return [*values, *([0] * (length - len(values)))]


def convert_record(record: CvpRecord, remapper: PageRemapper) -> Tuple[OpType, InputInstr]:
    """Turn one CVP record into a trace record, returning its operation type too."""
    op = classify_branch(record)
    instr = InputInstr(ip=record.pc)

    if record.is_branch:
        dest, src, keep_direction = _BRANCH_SHAPES[op]
        instr.is_branch = 1
        instr.branch_taken = record.taken if keep_direction else 1
        instr.destination_registers = _pad(dest, NUM_INSTR_DESTINATIONS)
        instr.source_registers = _pad(src, NUM_INSTR_SOURCES)
        return op, instr

    if record.inst_class is InstClass.UNDEF:
        raise ValueError(f"instruction at {record.pc:#x} has an undefined class")

    outputs = record.output_regs or [0]
    instr.destination_registers = _pad([_map_register(outputs[0])], NUM_INSTR_DESTINATIONS)
    instr.source_registers = _pad(
        [_map_register(r) for r in record.input_regs[:NUM_INSTR_SOURCES]], NUM_INSTR_SOURCES
    )
    if record.inst_class is InstClass.LOAD:
        instr.source_memory[0] = remapper.transform(record.ea)
    elif record.inst_class is InstClass.STORE:
        instr.destination_memory[0] = remapper.transform(record.ea)
    return op, instr


_CLASS_LABELS = {
    InstClass.ALU: "ALU",
    InstClass.FP: "FP",
    InstClass.SLOW_ALU: "SLOWALU",
}


def _describe(count: int, record: CvpRecord, op: OpType) -> str:
    text = f"{count} {record.pc:x} "
    if op is OpType.OPTYPE_OP:
        if record.inst_class is InstClass.LOAD:
            text += f"LOAD (0x{record.ea:x})"
        elif record.inst_class is InstClass.STORE:
            text += f"STORE (0x{record.ea:x})"
        else:
            text += _CLASS_LABELS.get(record.inst_class, "")
        text += "".join(f" I{r}" for r in record.input_regs[:NUM_INSTR_SOURCES])
        text += "".join(f" O{r}" for r in record.output_regs or [0])
    else:
        text += f"{op.name} {record.target:x}"
    return text + "\n"


def convert(path: Union[str, os.PathLike], out: IO[bytes], verbose: bool = False) -> Counter:
    """Convert the trace at ``path`` (or "-" for standard input), writing records to ``out``.

    Returns how many records of each operation type were written.
    """
    if os.fspath(path) == "-":
        _log("reading from standard input\n")
        buffered = io.BytesIO(sys.stdin.buffer.read())
        pages = preprocess(buffered)
        buffered.seek(0)
        source: ContextManager[IO[bytes]] = nullcontext(buffered)
    else:
        pages = preprocess(path)
        source = open_trace(path)

    remapper = PageRemapper(*pages)
    counts: Counter = Counter()
    reads = 0
    previous_pc = 0
    described = 0

    with source as stream:
        while True:
            reads += 1
            if reads % 1_000_000 == 0:
                _log(f"{reads} instructions\n")

            record = read_record(stream)
            pc = record.pc if record is not None else 0
            if pc == previous_pc:
                _log("hmm, that's weird\n")
            previous_pc = pc
            if record is None:
                break

            op, instr = convert_record(record, remapper)
            counts[op] += 1
            out.write(instr.to_bytes())

            if verbose:
                described += 1
                _log(_describe(described, record, op))

    _log(f"converted {reads} instructions\n")
    for op in OpType:
        if op is not OpType.OPTYPE_MAX and counts[op]:
            _log(f"{op.name} {counts[op]} {100 * counts[op] / reads:f}%\n")
    return counts


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Convert a CVP trace to standard output; "-v" describes each record on standard error."""
    args = sys.argv[1:] if argv is None else list(argv)
    verbose = False
    path = "-"
    for arg in args:
        if arg == "-v":
            verbose = True
        else:
            path = arg

    try:
        convert(path, sys.stdout.buffer, verbose)
    except OSError as exc:
        _log(f"{path}: {exc.strerror or exc}\n")
        return 1
    except ValueError as exc:
        _log(f"{path}: {exc}\n")
        return 1
    return 0