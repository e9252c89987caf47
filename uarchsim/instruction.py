"""The simulator's in-flight instruction model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Tuple, Union

from .trace import (
    REG_FLAGS,
    REG_INSTRUCTION_POINTER,
    REG_STACK_POINTER,
    CloudsuiteInstr,
    InputInstr,
)

_SPECIAL_REGISTERS = frozenset({REG_STACK_POINTER, REG_FLAGS, REG_INSTRUCTION_POINTER})


class BranchType(IntEnum):
    NOT_BRANCH = 0
    BRANCH_DIRECT_JUMP = 1
    BRANCH_INDIRECT = 2
    BRANCH_CONDITIONAL = 3
    BRANCH_DIRECT_CALL = 4
    BRANCH_INDIRECT_CALL = 5
    BRANCH_RETURN = 6
    BRANCH_OTHER = 7


@dataclass(eq=False)
class Instruction:
    """An instruction as it moves through the modelled pipeline."""

    instr_id: int = 0
    ip: int = 0
    event_cycle: int = 0

    is_branch: bool = False
    branch_taken: bool = False
    branch_prediction: bool = False
    branch_mispredicted: bool = False

    asid: Tuple[int, int] = (0xFF, 0xFF)

    branch_type: BranchType = BranchType.NOT_BRANCH
    branch_target: int = 0

    dib_checked: int = 0
    fetched: int = 0
    decoded: int = 0
    scheduled: int = 0
    executed: int = 0

    completed_mem_ops: int = 0
    num_reg_dependent: int = 0

    destination_registers: List[int] = field(default_factory=list)
    source_registers: List[int] = field(default_factory=list)
    destination_memory: List[int] = field(default_factory=list)
    source_memory: List[int] = field(default_factory=list)

    registers_instrs_depend_on_me: List["Instruction"] = field(default_factory=list)

    @classmethod
    def from_trace(cls, cpu: int, record: Union[InputInstr, CloudsuiteInstr]) -> "Instruction":
        """Build an instruction from a trace record, classifying any branch."""
        if isinstance(record, CloudsuiteInstr):
            asid = (record.asid[0], record.asid[1])
        else:
            asid = (cpu, cpu)

        dest = [r for r in record.destination_registers if r != 0]
        src = [r for r in record.source_registers if r != 0]
        instr = cls(
            ip=record.ip,
            is_branch=bool(record.is_branch),
            branch_taken=bool(record.branch_taken),
            asid=asid,
            destination_registers=dest,
            source_registers=src,
            destination_memory=[m for m in record.destination_memory if m != 0],
            source_memory=[m for m in record.source_memory if m != 0],
        )

        writes_sp = REG_STACK_POINTER in dest
        writes_ip = REG_INSTRUCTION_POINTER in dest
        reads_sp = REG_STACK_POINTER in src
        reads_flags = REG_FLAGS in src
        reads_ip = REG_INSTRUCTION_POINTER in src
        reads_other = any(r not in _SPECIAL_REGISTERS for r in src)
        recorded_taken = bool(record.branch_taken)

        if not reads_sp and not reads_flags and writes_ip and not reads_other:
            kind, taken = BranchType.BRANCH_DIRECT_JUMP, True
        elif not reads_sp and not reads_flags and writes_ip and reads_other:
            kind, taken = BranchType.BRANCH_INDIRECT, True
        elif not reads_sp and reads_ip and not writes_sp and writes_ip and reads_flags and not reads_other:
            kind, taken = BranchType.BRANCH_CONDITIONAL, recorded_taken
        elif reads_sp and reads_ip and writes_sp and writes_ip and not reads_flags and not reads_other:
            kind, taken = BranchType.BRANCH_DIRECT_CALL, True
        elif reads_sp and reads_ip and writes_sp and writes_ip and not reads_flags and reads_other:
            kind, taken = BranchType.BRANCH_INDIRECT_CALL, True
        elif reads_sp and not reads_ip and writes_sp and writes_ip:
            kind, taken = BranchType.BRANCH_RETURN, True
        elif writes_ip:
            kind, taken = BranchType.BRANCH_OTHER, recorded_taken
        else:
            instr.branch_taken = False
            return instr

        instr.is_branch = True
        instr.branch_taken = taken
        instr.branch_type = kind
        return instr

    def num_mem_ops(self) -> int:
        """Number of memory operations (loads plus stores) this instruction performs."""
        return len(self.destination_memory) + len(self.source_memory)


def program_order(lhs: Instruction, rhs: Instruction) -> bool:
    """True when ``lhs`` comes before ``rhs`` in program order."""
    return lhs.instr_id < rhs.instr_id