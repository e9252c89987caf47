# uarchsim

Parts of a trace-driven, cycle-level microarchitecture simulator. Each part
can be used on its own.

- `uarchsim.trace`: the fixed-size binary instruction records `InputInstr`
  and `CloudsuiteInstr`, with `to_bytes()` and the class method
  `from_bytes(data)`. Register lists shorter than the record's slots are
  padded with zeros; longer ones raise `ValueError`.
- `uarchsim.instruction`: `Instruction.from_trace(cpu, record)` drops the
  zero entries of a trace record and infers its `BranchType` from the special
  registers it reads and writes. `program_order(lhs, rhs)` compares
  instruction ids.
- `uarchsim.tracereader`: `get_tracereader(fname, cpu, is_cloudsuite, repeat)`
  opens a plain, `gz`, `xz` or `bz2` trace (chosen by the file name's ending)
  and returns a `TraceReader`. Each call returns the next `Instruction`, with a
  unique `instr_id` and with `branch_target` set to the following
  instruction's IP when the branch is taken. With `repeat` the trace is
  reopened when it runs out and `eof()` never becomes true.
- `uarchsim.vmem`: `VirtualMemory(page_table_page_size, page_table_levels,
  minor_penalty, dram_size)` hands out physical pages on first use.
  `va_to_pa(cpu, vaddr)` and `get_pte_pa(cpu, vaddr, level)` return a
  physical address and the fault penalty (zero when already mapped).
- `uarchsim.stats`: dataclasses for phase statistics (`CpuStats`,
  `CacheStats`, `DramStats`, `PhaseInfo`, `PhaseStats`) and `AccessType`.
- `uarchsim.printer`: `PlainPrinter(stream, num_cpus)` writes a text report
  with `print_cpu`, `print_cache`, `print_dram`, `print_phase` and
  `print_phases`.
- `uarchsim.span`, `uarchsim.bits`, `uarchsim.operable`,
  `uarchsim.repeatable`: helpers for bandwidth-limited queue processing,
  bit manipulation, clocked components (`Operable.tick()`) and restarting
  sources.

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Converting CVP-1 traces

The `cvp2trace` command reads a CVP-1 value-prediction trace and writes the
equivalent stream of `InputInstr` records to standard output. The input may
be plain, gzip or xz; the format is recognised by the file's first bytes.
With no file name, or `-`, it reads standard input.

```
cvp2trace input.cvp.gz > output.trace
cvp2trace -v input.cvp.gz > output.trace
```

A first pass collects the pages holding code and data; data addresses on a
code page are then moved to a free page, keeping their offset in the page.
Progress messages, a line per record (with `-v`) and a count of each
operation type go to standard error. A truncated or malformed record ends the
run with an error message and exit status 1.

The same steps are available from Python: `read_record`, `iter_records`,
`classify_branch`, `preprocess`, `PageRemapper`, `convert_record` and
`convert(path, out, verbose)` in `uarchsim.cvp`.

## Reading a trace

```python
from uarchsim.tracereader import get_tracereader

reader = get_tracereader("output.trace", cpu=0, is_cloudsuite=False, repeat=False)
while not reader.eof():
    instr = reader()
    print(hex(instr.ip), instr.branch_type.name, hex(instr.branch_target))
```

## What the package does not do

There is no simulator here: no pipeline model of a core, no caches, no
prefetchers or replacement policies, no DRAM controller, no page-table
walker and no command that runs a simulation over traces. Statistics can be
held and printed as plain text, but nothing in the package gathers them, and
there is no JSON report. There is also no tool that records new traces from a
running program; `cvp2trace` only converts existing CVP-1 traces.