import io

import pytest

from uarchsim.instruction import BranchType
from uarchsim.printer import PlainPrinter
from uarchsim.stats import AccessType, CacheStats, CpuStats, DramStats, PhaseStats


def render(num_cpus, method, stats):
    out = io.StringIO()
    printer = PlainPrinter(out, num_cpus)
    getattr(printer, method)(stats)
    return out.getvalue()


def value_after(line, label):
    tokens = line.split()
    return int(tokens[tokens.index(label) + 1])


def test_cpu_header_line():
    stats = CpuStats(name="CPU 0", end_instrs=1000, end_cycles=2000)
    text = render(1, "print_cpu", stats)
    assert "CPU 0 cumulative IPC: 0.5 instructions: 1000 cycles: 2000" in text


def test_cpu_without_branches_reports_nan_accuracy():
    stats = CpuStats(name="CPU 0", end_instrs=10, end_cycles=10)
    text = render(1, "print_cpu", stats)
    assert "Branch Prediction Accuracy: nan%" in text


def test_cpu_zero_instructions_does_not_raise_and_reports_nan_ipc():
    text = render(1, "print_cpu", CpuStats(name="CPU 3"))
    assert "CPU 3 cumulative IPC: nan" in text


def test_cpu_branch_type_mpki_order():
    text = render(1, "print_cpu", CpuStats(name="CPU 0", end_instrs=5, end_cycles=5))
    section = text.split("Branch type MPKI\n")[1]
    names = [line.split(":")[0] for line in section.splitlines() if line]
    assert names == [
        "BRANCH_DIRECT_JUMP",
        "BRANCH_INDIRECT",
        "BRANCH_CONDITIONAL",
        "BRANCH_DIRECT_CALL",
        "BRANCH_INDIRECT_CALL",
        "BRANCH_RETURN",
    ]


def test_cpu_perfect_prediction_is_full_accuracy():
    stats = CpuStats(name="CPU 0", end_instrs=1000, end_cycles=1000)
    stats.total_branch_types[BranchType.BRANCH_CONDITIONAL] = 40
    text = render(1, "print_cpu", stats)
    assert "Branch Prediction Accuracy: 100%" in text


def make_cache(num_cpus=1):
    stats = CacheStats(name="L1D")
    stats.hits = {t: [3 + int(t) + cpu for cpu in range(num_cpus)] for t in AccessType}
    stats.misses = {t: [1 + cpu for cpu in range(num_cpus)] for t in AccessType}
    return stats


def test_cache_lines_access_equals_hit_plus_miss():
    text = render(1, "print_cache", make_cache())
    lines = [line for line in text.splitlines() if "ACCESS:" in line]
    assert len(lines) == 1 + len(AccessType)
    for line in lines:
        assert value_after(line, "ACCESS:") == value_after(line, "HIT:") + value_after(line, "MISS:")


def test_cache_total_sums_type_lines():
    text = render(1, "print_cache", make_cache())
    lines = [line for line in text.splitlines() if "ACCESS:" in line]
    total, *per_type = lines
    assert value_after(total, "HIT:") == sum(value_after(line, "HIT:") for line in per_type)
    assert value_after(total, "MISS:") == sum(value_after(line, "MISS:") for line in per_type)


def test_cache_one_block_per_cpu():
    text = render(2, "print_cache", make_cache(2))
    assert text.count("L1D TOTAL") == 2
    assert text.count("AVERAGE MISS LATENCY") == 2


def test_cache_missing_cpu_counters_raises():
    with pytest.raises(IndexError):
        render(2, "print_cache", make_cache(1))


def test_dram_without_congestion_prints_dash():
    text = render(1, "print_dram", DramStats(name="Channel 0"))
    assert " AVG DBUS CONGESTED CYCLE: -\n" in text


def test_dram_with_congestion_prints_value():
    stats = DramStats(name="Channel 0", dbus_cycle_congested=10, dbus_count_congested=4)
    text = render(1, "print_dram", stats)
    assert " AVG DBUS CONGESTED CYCLE: -" not in text
    assert "AVG DBUS CONGESTED CYCLE: 2.5" in text


def test_dram_rq_counters():
    stats = DramStats(name="Channel 0", rq_row_buffer_hit=7, rq_row_buffer_miss=9)
    lines = render(1, "print_dram", stats).splitlines()
    rq = next(line for line in lines if "RQ ROW_BUFFER_HIT" in line)
    assert rq.startswith("Channel 0")
    assert int(rq.split(":")[1]) == 7
    assert int(lines[lines.index(rq) + 1].split(":")[1]) == 9


def test_dram_wq_line_carries_name():
    text = render(1, "print_dram", DramStats(name="Chan"))
    assert "WQ ROW_BUFFER_HIT: Chan" in text


def make_phase(name):
    return PhaseStats(
        name=name,
        trace_names=["a.trace"],
        roi_cpu_stats=[CpuStats(name="CPU 0", end_instrs=10, end_cycles=10)],
        sim_cpu_stats=[CpuStats(name="CPU 0", end_instrs=10, end_cycles=10)],
        roi_dram_stats=[DramStats(name="Channel 0")],
    )


def test_phase_single_cpu_omits_total_section():
    text = render(1, "print_phase", make_phase("Simulation"))
    assert text.startswith("=== Simulation ===\n")
    assert "CPU 0 runs a.trace" in text
    assert "Total Simulation Statistics" not in text
    assert "Region of Interest Statistics" in text
    assert text.index("Region of Interest Statistics") < text.index("DRAM Statistics")


def test_phase_multi_cpu_includes_total_section():
    text = render(2, "print_phase", make_phase("Simulation"))
    assert "Total Simulation Statistics (not including warmup)" in text
    assert text.count("cumulative IPC") == 2


def test_phases_printed_in_order():
    text = render(1, "print_phases", [make_phase("Warmup"), make_phase("Simulation")])
    assert text.index("=== Warmup ===") < text.index("=== Simulation ===")
    assert text.count("DRAM Statistics") == 2