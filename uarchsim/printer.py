"""Human-readable report of phase statistics."""

from __future__ import annotations

import math
from typing import IO, Iterable

from .instruction import BranchType
from .stats import AccessType, CacheStats, CpuStats, DramStats, PhaseStats

_BRANCH_TYPES = (
    BranchType.BRANCH_DIRECT_JUMP,
    BranchType.BRANCH_INDIRECT,
    BranchType.BRANCH_CONDITIONAL,
    BranchType.BRANCH_DIRECT_CALL,
    BranchType.BRANCH_INDIRECT_CALL,
    BranchType.BRANCH_RETURN,
)

_ACCESS_TYPES = (
    AccessType.LOAD,
    AccessType.RFO,
    AccessType.PREFETCH,
    AccessType.WRITE,
    AccessType.TRANSLATION,
)


def _ratio(numerator: float, denominator: float) -> float:
    """Floating-point division that yields inf or nan instead of raising."""
    if denominator:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator)


class PlainPrinter:
    """Writes statistics as plain text."""

    def __init__(self, stream: IO[str], num_cpus: int) -> None:
        self.stream = stream
        self.num_cpus = num_cpus

    def _write(self, text: str) -> None:
        self.stream.write(text)

    def print_cpu(self, stats: CpuStats) -> None:
        total_branch = float(sum(stats.total_branch_types[t] for t in _BRANCH_TYPES))
        total_misp = float(sum(stats.branch_type_misses[t] for t in _BRANCH_TYPES))
        instrs = float(stats.instrs())
        cycles = float(stats.cycles())

        self._write(
            f"\n{stats.name} cumulative IPC: {_ratio(instrs, cycles):.4g} "
            f"instructions: {stats.instrs()} cycles: {stats.cycles()}\n"
        )
        accuracy = _ratio(100.0 * (total_branch - total_misp), total_branch)
        mpki = _ratio(1000.0 * total_misp, instrs)
        rob = _ratio(float(stats.total_rob_occupancy_at_branch_mispredict), total_misp)
        self._write(
            f"{stats.name} Branch Prediction Accuracy: {accuracy:.4g}% MPKI: {mpki:.4g} "
            f"Average ROB Occupancy at Mispredict: {rob:.4g}\n"
        )

        mpkis = [_ratio(1000.0 * misses, instrs) for misses in stats.branch_type_misses]
        self._write("Branch type MPKI\n")
        for branch in _BRANCH_TYPES:
            self._write(f"{branch.name}: {mpkis[branch]:.3g}\n")
        self._write("\n")

    def print_cache(self, stats: CacheStats) -> None:
        for cpu in range(self.num_cpus):
            total_hit = sum(stats.hits[t][cpu] for t in _ACCESS_TYPES)
            total_miss = sum(stats.misses[t][cpu] for t in _ACCESS_TYPES)

            self._write(
                f"{stats.name} TOTAL        ACCESS: {total_hit + total_miss:10d} "
                f"HIT: {total_hit:10d} MISS: {total_miss:10d}\n"
            )
            for t in _ACCESS_TYPES:
                hit, miss = stats.hits[t][cpu], stats.misses[t][cpu]
                self._write(f"{stats.name} {t.name:<12s} ACCESS: {hit + miss:10d} HIT: {hit:10d} MISS: {miss:10d}\n")

            self._write(
                f"{stats.name} PREFETCH REQUESTED: {stats.pf_requested:10} ISSUED: {stats.pf_issued:10} "
                f"USEFUL: {stats.pf_useful:10} USELESS: {stats.pf_useless:10}\n"
            )
            self._write(f"{stats.name} AVERAGE MISS LATENCY: {float(stats.avg_miss_latency):.4g} cycles\n")

    def print_dram(self, stats: DramStats) -> None:
        self._write(
            f"\n{stats.name} RQ ROW_BUFFER_HIT: {stats.rq_row_buffer_hit:10}\n"
            f"  ROW_BUFFER_MISS: {stats.rq_row_buffer_miss:10}\n"
        )
        if stats.dbus_count_congested > 0:
            congested = _ratio(float(stats.dbus_cycle_congested), float(stats.dbus_count_congested))
            self._write(f" AVG DBUS CONGESTED CYCLE: {congested:.4g}\n")
        else:
            self._write(" AVG DBUS CONGESTED CYCLE: -\n")
        self._write(
            f"WQ ROW_BUFFER_HIT: {stats.name:10}\n"
            f"  ROW_BUFFER_MISS: {stats.wq_row_buffer_hit:10}\n"
            f"  FULL: {stats.wq_row_buffer_miss:10}\n"
        )

    def print_phase(self, stats: PhaseStats) -> None:
        self._write(f"=== {stats.name} ===\n")
        for i, trace_name in enumerate(stats.trace_names):
            self._write(f"CPU {i} runs {trace_name}")

        if self.num_cpus > 1:
            self._write("\nTotal Simulation Statistics (not including warmup)\n")
            for cpu_stat in stats.sim_cpu_stats:
                self.print_cpu(cpu_stat)
            for cache_stat in stats.sim_cache_stats:
                self.print_cache(cache_stat)

        self._write("\nRegion of Interest Statistics\n")
        for cpu_stat in stats.roi_cpu_stats:
            self.print_cpu(cpu_stat)
        for cache_stat in stats.roi_cache_stats:
            self.print_cache(cache_stat)

        self._write("\nDRAM Statistics\n")
        for dram_stat in stats.roi_dram_stats:
            self.print_dram(dram_stat)

    def print_phases(self, stats: Iterable[PhaseStats]) -> None:
        for phase in stats:
            self.print_phase(phase)