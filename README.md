# rvsim

A small RV32I processor simulator. It loads the loadable segments of a 32- or
64-bit ELF image into a 4 MiB memory. It runs the image on a single-issue core
with a 1 KiB instruction cache and a 4 KiB data cache, and counts every clock
cycle spent, including memory stalls. Both caches are fully associative, use
128-byte lines, write back, and replace the least recently used line.

## Talking to the host

Programs send messages to the host by writing the `mtohost` CSR. The upper
half-word of the written value gives the message type. The lower half-word
holds its data:

| type | meaning                                    |
|------|--------------------------------------------|
| 0    | exit code; 0 means the run passed          |
| 1    | print one character                        |
| 2    | low 16 bits of an integer to print         |
| 3    | high 16 bits of the integer; prints it     |

## Supported instructions

- Integer ALU operations with register or immediate operands: add, sub, and,
  or, xor, slt, sltu, sll, srl, sra.
- `lui`, `auipc`, `jal` and `jalr`.
- The conditional branches beq, bne, blt, bge, bltu and bgeu.
- Word loads and stores: `lw` and `sw`.
- Two CSR forms:
  - `csrr rd, csr` reads `cycle`, `instret` or `mhartid`.
  - `csrw csr, rs1` writes `mtohost`.

## Installing

```
pip install .
```

## Running a program

```
rvsim path/to/program.elf
```

The simulator resets the core to address `0x200` and runs until the program
writes an exit code. The program's output is printed to standard error. The
run ends with `PASSED` when the exit code is zero, or `FAILED: exit code = N`
otherwise. The command's exit status is that code.

When no path is given, a file named `program` in the current directory is
loaded. A file that cannot be read or is not a valid ELF image prints an
`ERROR: load_elf: ...` line and exits with status 1.

## Using it from Python

```python
import sys

from rvsim.memory import MemoryStorage, UncachedMem, CachedMem
from rvsim.cpu import Cpu
from rvsim.cli import run

storage = MemoryStorage()
storage.load_elf("program")          # or storage.load_elf_bytes(data)
memory = CachedMem(UncachedMem(storage))
cpu = Cpu(memory)
cpu.reset(0x200)

exit_code = run(cpu, memory, sys.stderr)
```

`run` clocks the CPU and the memory together and writes the program's output
to the given text stream. It returns the program's exit code. To drive the
core yourself, call `Cpu.clock()` and `CachedMem.clock()` once per cycle, and
collect messages with `Cpu.take_message()`. That method returns a
`HostMessage` or `None`.

You can also use the building blocks on their own:

- `rvsim.decoder.decode` turns a 32-bit word into an `Instruction`.
- `rvsim.executor.execute` computes the instruction's result and next address.
- `RegisterFile` and `CsrFile` in `rvsim.regfile` hold the architectural state.
- `HostMessage.from_payload` in `rvsim.hostmsg` splits a value written to
  `mtohost` into its type and data. `HostMessage.payload()` packs it back.
- `UncachedMem` models main memory with a fixed 120-cycle latency, with no
  cache in front of it.

An image that cannot be loaded raises `rvsim.memory.ElfLoadError`.

## What it does not do

- It has no byte or half-word loads or stores.
- It has no multiply or divide instructions, no atomics and no fences.
- It supports only `csrr` and `csrw`; it has no other CSR instructions.
- It has no system calls, traps, interrupts or privilege levels.
- Unsupported instructions are not reported as errors.
- It has no debugger and no tracing.

## Running the tests

```
pip install .[test]
pytest
```