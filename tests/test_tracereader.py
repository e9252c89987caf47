import bz2
import gzip
import lzma

import pytest

from uarchsim.instruction import BranchType, Instruction
from uarchsim.trace import REG_FLAGS, REG_INSTRUCTION_POINTER, CloudsuiteInstr, InputInstr
from uarchsim.tracereader import (
    BulkTraceReader,
    TraceReader,
    apply_branch_target,
    get_tracereader,
    open_trace,
)

IPS = [0x1000, 0x2000, 0x3000]


def records():
    return [
        InputInstr(ip=IPS[0], is_branch=1, branch_taken=1, destination_registers=[REG_INSTRUCTION_POINTER]),
        InputInstr(ip=IPS[1]),
        InputInstr(ip=IPS[2]),
    ]


def write_trace(path, opener=open, recs=None):
    with opener(path, "wb") as f:
        for r in recs if recs is not None else records():
            f.write(r.to_bytes())
    return str(path)


def test_tracereader_without_eof_member():
    uut = TraceReader(lambda: Instruction.from_trace(0, InputInstr()))
    assert not uut.eof()
    uut()
    assert not uut.eof()


def test_tracereader_assigns_increasing_ids():
    uut = TraceReader(lambda: Instruction.from_trace(0, InputInstr(ip=4)))
    first, second = uut(), uut()
    assert second.instr_id == first.instr_id + 1


def test_apply_branch_target_taken():
    br = Instruction(ip=1, is_branch=True, branch_taken=True)
    result = apply_branch_target(br, Instruction(ip=0xCAFE))
    assert result.branch_target == 0xCAFE
    assert br.branch_target == 0


def test_apply_branch_target_not_taken():
    br = Instruction(ip=1, is_branch=True, branch_taken=False, branch_target=9)
    assert apply_branch_target(br, Instruction(ip=0xCAFE)).branch_target == 0


def test_bulk_reader_reads_in_order(tmp_path):
    uut = BulkTraceReader(0, write_trace(tmp_path / "t.trace"))
    got = [uut() for _ in IPS]
    assert [i.ip for i in got] == IPS
    assert uut.eof()


def test_bulk_reader_sets_branch_target(tmp_path):
    uut = BulkTraceReader(0, write_trace(tmp_path / "t.trace"))
    first = uut()
    assert first.branch_type == BranchType.BRANCH_DIRECT_JUMP
    assert first.branch_target == IPS[1]


def test_bulk_reader_raises_at_end(tmp_path):
    uut = BulkTraceReader(0, write_trace(tmp_path / "t.trace"))
    for _ in IPS:
        uut()
    with pytest.raises(EOFError):
        uut()


@pytest.mark.parametrize(
    "suffix, opener",
    [(".gz", gzip.open), (".xz", lzma.open), (".bz2", bz2.open)],
)
def test_compressed_traces(tmp_path, suffix, opener):
    path = write_trace(tmp_path / ("t.trace" + suffix), opener)
    with open_trace(path) as f:
        assert f.read() == b"".join(r.to_bytes() for r in records())
    uut = BulkTraceReader(0, path)
    assert [uut().ip for _ in IPS] == IPS


def test_cloudsuite_trace(tmp_path):
    recs = [
        CloudsuiteInstr(ip=0x10, destination_registers=[REG_INSTRUCTION_POINTER], source_registers=[REG_INSTRUCTION_POINTER, REG_FLAGS], branch_taken=1, asid=[2, 3]),
        CloudsuiteInstr(ip=0x20, asid=[2, 3]),
    ]
    uut = BulkTraceReader(1, write_trace(tmp_path / "c.trace", recs=recs), cloudsuite=True)
    first = uut()
    assert first.asid == (2, 3)
    assert first.branch_type == BranchType.BRANCH_CONDITIONAL
    assert first.branch_target == 0x20


def test_get_tracereader_without_repeat(tmp_path):
    uut = get_tracereader(write_trace(tmp_path / "t.trace"), 0, False, False)
    assert [uut().ip for _ in IPS] == IPS
    assert uut.eof()


def test_get_tracereader_with_repeat(tmp_path, capsys):
    uut = get_tracereader(write_trace(tmp_path / "t.trace"), 0, False, True)
    got = [uut().ip for _ in range(2 * len(IPS))]
    assert got == IPS + IPS
    assert not uut.eof()
    assert "*** Reached end of trace" in capsys.readouterr().out