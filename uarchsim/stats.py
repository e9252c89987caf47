"""Statistics records gathered during a simulation phase."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List

from .instruction import BranchType


class AccessType(IntEnum):
    LOAD = 0
    RFO = 1
    PREFETCH = 2
    WRITE = 3
    TRANSLATION = 4


def _per_type_counters() -> Dict[AccessType, List[int]]:
    return {t: [0] for t in AccessType}


def _per_branch_counters() -> List[int]:
    return [0] * len(BranchType)


@dataclass
class DramStats:
    """Counters of one DRAM channel."""

    name: str = ""
    dbus_cycle_congested: int = 0
    dbus_count_congested: int = 0
    wq_row_buffer_hit: int = 0
    wq_row_buffer_miss: int = 0
    rq_row_buffer_hit: int = 0
    rq_row_buffer_miss: int = 0
    wq_full: int = 0


@dataclass
class CpuStats:
    """Counters of one core over a phase."""

    name: str = ""
    begin_instrs: int = 0
    begin_cycles: int = 0
    end_instrs: int = 0
    end_cycles: int = 0
    total_rob_occupancy_at_branch_mispredict: int = 0
    total_branch_types: List[int] = field(default_factory=_per_branch_counters)
    branch_type_misses: List[int] = field(default_factory=_per_branch_counters)

    def instrs(self) -> int:
        """Instructions retired during the phase."""
        return self.end_instrs - self.begin_instrs

    def cycles(self) -> int:
        """Cycles elapsed during the phase."""
        return self.end_cycles - self.begin_cycles


@dataclass
class CacheStats:
    """Counters of one cache; hits and misses are indexed by access type, then CPU."""

    name: str = ""
    pf_requested: int = 0
    pf_issued: int = 0
    pf_useful: int = 0
    pf_useless: int = 0
    pf_fill: int = 0
    hits: Dict[AccessType, List[int]] = field(default_factory=_per_type_counters)
    misses: Dict[AccessType, List[int]] = field(default_factory=_per_type_counters)
    avg_miss_latency: float = 0.0


@dataclass
class PhaseInfo:
    """Description of one simulation phase."""

    name: str
    is_warmup: bool
    length: int
    trace_index: List[int] = field(default_factory=list)
    trace_names: List[str] = field(default_factory=list)


@dataclass
class PhaseStats:
    """All statistics collected for one phase."""

    name: str = ""
    trace_names: List[str] = field(default_factory=list)
    roi_cpu_stats: List[CpuStats] = field(default_factory=list)
    sim_cpu_stats: List[CpuStats] = field(default_factory=list)
    roi_cache_stats: List[CacheStats] = field(default_factory=list)
    sim_cache_stats: List[CacheStats] = field(default_factory=list)
    roi_dram_stats: List[DramStats] = field(default_factory=list)
    sim_dram_stats: List[DramStats] = field(default_factory=list)