"""Step-by-step emulation of binary Turing machines given as text specs.

A spec is an instruction table optionally followed by a comma and a
configuration such as ``0110(0)01``: the cells left of and including the
head, the current state in parentheses, and the cells right of the head.
"""

from __future__ import annotations

import getopt
import sys
from dataclasses import dataclass
from typing import Optional, Sequence, TextIO

from btmkit.machine import Machine
from btmkit.numbers import CliError, parse_int, parse_long

PROG = "btm-emul"
NO_LIMIT = (1 << 63) - 1
_BLANKS = " \t"

_USAGE = """\
usage: {prog} [options] [btm-spec]...
options:
  -s        only summarize the emulation
  -c        for every BTM that didn't finish, append to its summary a colon
            followed by the BTM's specs after the last step
  -n nstep  if NSTEP is positive, it sets the maximum number of steps,
            otherwise there is no limit. the default is 50
  -b start  START indicates the number of steps the BTMs have already run
  -h        show this help message and exit
BTM specs are read from stdin if none is given in the command line
"""


@dataclass
class EmulOptions:
    """How a spec is emulated and reported."""

    nstep: int = 50
    start: int = 0
    summary: bool = False
    show_config: bool = False


def _skip_blanks(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _BLANKS:
        pos += 1
    return pos


def _bits_end(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in "01":
        pos += 1
    return pos


def format_config(machine: Machine) -> str:
    """Return the machine's written tape with the state shown after the head cell."""
    i, j = machine.tape_range()
    h = machine.head
    if h < i:
        i = h
    elif h >= j:
        j = h + 1
    parts = []
    for k in range(i, j):
        parts.append(machine.cell(k))
        if k == h:
            parts.append(f"({machine.state})")
    return "".join(parts)


def _apply_config(machine: Machine, conf: str) -> None:
    p = _skip_blanks(conf, 0)
    end = _bits_end(conf, p)
    machine.set_tape(1 - (end - p), 1, conf[p:end])
    p = _skip_blanks(conf, end)
    close = conf.find(")", p + 1) if p < len(conf) and conf[p] == "(" else -1
    if close < 0:
        raise CliError(f"{conf}: Invalid configuration")
    state = parse_int(conf[p + 1 : close])
    try:
        machine.set_state(state)
    except ValueError:
        raise CliError("btm_set_state: Invalid argument") from None
    p = _skip_blanks(conf, close + 1)
    end = _bits_end(conf, p)
    if end > p:
        machine.set_tape(1, 1 + end - p, conf[p:end])
        p = _skip_blanks(conf, end)
    if p < len(conf):
        raise CliError(f"{conf}: Trailing characters: `{conf[p:]}'")


def run_spec(machine: Machine, spec: str, options: EmulOptions, out: TextIO) -> None:
    """Load ``spec`` into ``machine``, emulate it and write the report to ``out``.

    Raises ValueError if the instruction table is invalid and CliError if the
    configuration is invalid.
    """
    table, has_conf, conf = spec.partition(",")
    try:
        machine.load_table(table)
    except ValueError:
        raise ValueError(f"btm_table_load {table}: Invalid argument") from None
    machine.reset()
    if has_conf:
        _apply_config(machine, conf)
    if options.summary:
        try:
            n = machine.run(options.nstep)
        except ValueError:
            raise CliError("btm_run: Invalid argument") from None
    else:
        out.write(f"{table}:\n")
        n = 0
        while n < options.nstep and machine.state >= 0:
            out.write(f"{options.start + n}: {format_config(machine)}\n")
            machine.run(1)
            n += 1
    total = options.start + n
    if machine.state < 0:
        out.write(f"{table} finished in {total} steps\n")
    else:
        out.write(f"{table} continues after {total} steps")
        if options.show_config:
            out.write(f": {table},{format_config(machine)}\n")
        else:
            out.write("\n")
    out.flush()


def _warn(message: str) -> None:
    print(f"{PROG}: {message}", file=sys.stderr)


def _handle(machine: Machine, spec: str, options: EmulOptions, out: TextIO) -> None:
    try:
        run_spec(machine, spec, options, out)
    except ValueError as exc:
        _warn(str(exc))


def _parse_args(args: Sequence[str]) -> tuple[Optional[EmulOptions], list[str]]:
    try:
        opts, operands = getopt.getopt(list(args), "csb:n:h")
    except getopt.GetoptError as exc:
        if exc.opt in ("b", "n"):
            raise CliError(f"Option -{exc.opt} requires an operand") from None
        raise CliError(f"Unrecognized option: -{exc.opt}") from None
    options = EmulOptions()
    for opt, value in opts:
        if opt == "-c":
            options.show_config = True
        elif opt == "-s":
            options.summary = True
        elif opt == "-b":
            options.start = parse_long(value)
        elif opt == "-n":
            options.nstep = parse_long(value)
            if options.nstep <= 0:
                options.nstep = NO_LIMIT
        elif opt == "-h":
            return None, operands
    return options, operands


def _emulate(args: Sequence[str], out: TextIO) -> int:
    options, operands = _parse_args(args)
    if options is None:
        out.write(_USAGE.format(prog=PROG))
        return 0
    machine = Machine()
    if not operands or operands[0] == "-":
        handled = 0
        for line in sys.stdin:
            spec = line[:-1] if line.endswith("\n") else line
            if not spec.strip(_BLANKS):
                continue
            if not options.summary and handled:
                out.write("\n")
            _handle(machine, spec, options, out)
            handled += 1
    else:
        for index, spec in enumerate(operands):
            if not options.summary and index:
                out.write("\n")
            _handle(machine, spec, options, out)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the emulator command and return its exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    out = sys.stdout
    try:
        return _emulate(args, out)
    except CliError as exc:
        out.flush()
        _warn(exc.message)
        return 1