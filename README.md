# btmkit

Tools for binary Turing machines (BTMs): machines with a two-symbol tape
(`0` and `1`) that is unbounded in both directions, a finite set of states and
a special finishing instruction `f`.

Two commands are installed:

- `btm-emul` runs machines step by step and reports whether they finish.
- `btm-enum` lists machines of a given size, with filters for cyclic,
  non-erasing, separable or repeating machines, and for run lengths.

The package has no dependencies beyond the standard library.

## Installation

```
pip install .
```

## Instruction tables

A machine is written as a sequence of instructions, two per state: the first
for reading `0`, the second for reading `1`. Each instruction is a letter
followed by an optional target state (decimal, octal with a leading `0`, or
hex with `0x`). Spaces and tabs between instructions are allowed.

| letter | writes | moves |
|--------|--------|-------|
| `o`    | `0`    | left  |
| `O`    | `0`    | right |
| `i`    | `1`    | left  |
| `I`    | `1`    | right |
| `f`    | finish |       |

A missing target means "the next state"; in the last state it means state 0.
For example `I1 o0 i f` is a two-state machine. A machine always starts in
state 0 with its head on cell 0 of an all-`0` tape. When written out, a target
is omitted wherever it is the next state, so `I1 o0 i f` is printed as `Io0if`.

## Running machines

```
btm-emul 'IfiO'
btm-emul -s -n 1000 'IfiO' 'I1o0if'
echo 'IfiO' | btm-emul -c
```

Specs are taken from the command line; if none is given, or the first one is
`-`, they are read from standard input one per line (blank lines are skipped).

Options:

- `-s` print only a summary per machine
- `-c` for machines that did not finish, append a colon and the spec with the
  configuration after the last step
- `-n nstep` maximum number of steps; zero or negative means no limit
  (default 50)
- `-b start` number of steps already run, added to the printed step numbers
- `-h` show help

Without `-s`, each step is printed as the step number followed by the written
part of the tape, with the current state in parentheses right after the cell
under the head. The run ends with a line saying either
`<table> finished in N steps` or `<table> continues after N steps`.

A spec may carry a starting configuration after a comma, such as
`IfiO, 10(1)01`: the cells up to and including the head cell (the last of them
is cell 0, where the head sits), the state in parentheses, and the cells to the
right of the head. An invalid instruction table is reported on standard error
and the next spec is processed; an invalid configuration stops the command
with exit status 1.

## Enumerating machines

```
btm-enum 2
btm-enum -c -n 10 3
btm-enum -t 5,20 -a 2
btm-enum -r 100 4
btm-enum -z 2,4 -d 4 3
```

Machines are listed in a canonical form in which states are numbered in the
order they are first used, so each machine appears once up to renaming of its
states.

Options:

- `-c` only cyclic machines (every instruction targets the next state)
- `-e` only non-erasing machines (nothing writes `0` over a `1`)
- `-f` only machines with at least one `f`
- `-u` avoid machines with several `f`
- `-m` avoid mirrored machines
- `-s` exclude separable machines (some states can never reach an `f`)
- `-a` with `-t minrun,maxrun`, append a tab and the number of steps run
- `-l length` list table prefixes of that many instructions instead of whole
  tables; the size then defaults to `length + 1`
- `-n maxout` stop after that many results
- `-p prefix` only machines whose table starts with the prefix
- `-r maxtry` random sampling of that many machines; a negative value samples
  without end
- `-t minrun[,maxrun]` only machines that run at least `minrun` steps and, with
  `maxrun`, finish within `maxrun` steps
- `-z minrep,index` exclude machines whose executed instructions repeat
  `minrep` times in the `2N` steps after the first `N`, for `N` in
  `minrep, 2*minrep, ..., minrep*2^(index-1)`
- `-d duplen` after the `-z` checks, collapse repeated runs of at most
  `duplen` instructions in the recorded steps and check the last two thirds
  again
- `-h` show help

`btm-enum` stops cleanly on SIGINT or SIGTERM.

## Library use

- `btmkit.machine`: `Machine` (tables, tape, `run`, `load_table`,
  `dump_table`, ...), `Flag`, `parse_instr`, `make_instr`, `instr_target`,
  `instr_symbol`, `instr_move`
- `btmkit.iterator`: `MachineIterator`, which walks through canonical machine
  tables of a given size
- `btmkit.emulator`: `run_spec`, `format_config`, `EmulOptions`, `main`
- `btmkit.enumerator`: `accepts`, `enumerate_machines`, `is_separable`,
  `is_repeating`, `dedup`, `EnumOptions`, `main`
- `btmkit.numbers`: `parse_int`, `parse_long`, `CliError`

```python
from btmkit.machine import Machine

m = Machine()
m.load_table("IfiO")
steps = m.run(100)
print(steps, m.state, m.dump_table())
```

```python
from btmkit.iterator import MachineIterator

for machine in MachineIterator(2):
    print(machine.dump_table())
```

`MachineIterator` reuses one `Machine` object for every table it yields; call
`dump_table()` or copy what you need before advancing.

## Tests

```
pip install .[test]
pytest
```