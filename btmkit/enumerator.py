"""Enumeration and filtering of binary Turing machines.

Machines of a given size are generated in canonical form and filtered by
how long they run, by whether their executed instructions settle into a
repeating pattern, and by whether some of their states can never reach a
FIN instruction.
"""

from __future__ import annotations

import contextlib
import getopt
import random
import signal
import sys
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, TextIO

from btmkit.iterator import MachineIterator
from btmkit.machine import (
    FIN,
    Flag,
    Machine,
    instr_move,
    instr_symbol,
    instr_target,
    make_instr,
)
from btmkit.numbers import CliError, parse_int, parse_long

PROG = "btm-enum"
_BLANKS = " \t"

_USAGE = """\
usage: {prog} [options] size
options:
  -c         generate only cyclic BTMs
  -e         generate only non-erasing BTMs
  -f         generate only BTMs with at least one FIN
  -u         avoid BTMs with multiple FINs
  -m         avoid mirrored BTMs
  -a         if a maximum number of steps is specified with option -t, append
             to each BTM a tab and the number of steps it can run
  -s         exclude separable BTMs
  -l length  generate LENGTH long BTM prefixes instead of BTMs
  -n maxout  output only MAXOUT results
  -p prefix  generate only BTMs prefixed by PREFIX
  -r maxtry  if MAXTRY is non-negative, randomly try MAXTRY BTMs, otherwise
             randomly generate indefinitely
  -t minrun[,maxrun]
             output only BTMs that can run at least MINRUN steps and, if MAXOUT
             is specified, at most MAXRUN steps
  -z minrep,index
             exclude BTMs whose invoked instructions repeat MINREP times in the
             N*2 steps after the first N steps, where N is any of MINREP,
             MINREP*2, ..., MINREP*2^(INDEX-1)
  -d duplen  take all steps recorded by the use of option -z, deduplicate
             sequences that are at most DUPLEN long and redo repetition
             detection in the last 2/3 portion
  -h         show this help message and exit
"""


@dataclass
class EnumOptions:
    """What to enumerate and which machines to keep.

    Negative ``max_out`` and ``max_try`` mean no limit; a zero ``max_run``
    means no upper bound on the steps a machine may run.
    """

    size: int = -1
    flags: Flag = Flag.NONE
    length: int = -1
    max_out: int = -1
    max_try: int = -1
    append_steps: bool = False
    mirror: bool = False
    exclude_separable: bool = False
    min_run: int = 0
    max_run: int = 0
    min_rep: int = 0
    zindex: int = 0
    duplen: int = 0
    rng: Optional[random.Random] = None


class _StopRequest:
    """Records that a termination signal asked the enumeration to end."""

    def __init__(self) -> None:
        self.requested = False
        self.signum: Optional[int] = None

    def clear(self) -> None:
        self.requested = False
        self.signum = None

    def handle(self, signum, frame) -> None:
        self.signum = signum
        self.requested = True


_stop = _StopRequest()


def is_separable(machine: Machine, flags: int = Flag.NONE) -> bool:
    """Tell whether some states of ``machine`` can never lead to a FIN.

    With :attr:`Flag.EXCL_NO_FIN`, state 0 counts as leading to a FIN.
    """
    n = machine.size
    if n == 0:
        return False
    mark = [False] * n
    marked = 0
    if flags & Flag.EXCL_NO_FIN:
        mark[0] = True
        marked += 1
    for q in range(n - 1, 0, -1):
        i = instr_target(machine.instr(q, "0"))
        if i < 0 or mark[i]:
            mark[q] = True
            marked += 1
            continue
        j = instr_target(machine.instr(q, "1"))
        if j < 0 or mark[j]:
            mark[q] = True
            marked += 1
        elif i == q and j == q:
            return True
    while True:
        changed = 0
        for q in range(n - 1, 0, -1):
            if mark[q]:
                continue
            if (
                mark[instr_target(machine.instr(q, "0"))]
                or mark[instr_target(machine.instr(q, "1"))]
            ):
                mark[q] = True
                changed += 1
        if not changed:
            break
        marked += changed
        if marked >= n:
            break
    return marked < n


def is_repeating(seq: Sequence[int], minrep: int) -> bool:
    """Tell whether ``seq`` is periodic with a period repeated ``minrep`` times."""
    n = len(seq)
    return any(
        all(seq[k] == seq[k % p] for k in range(p, n))
        for p in range(1, n // minrep + 1)
    )


def _dedup(buf: Sequence[int], n: int, duplen: int) -> list[int]:
    """Deduplicate ``buf[:n]``, reading past ``n`` into ``buf`` as lookahead."""
    if n <= 1:
        return list(buf[:n])
    work: list[Optional[int]] = list(buf) + [None] * max(0, n + duplen - len(buf))
    i = 0
    while i < n - 1:
        m = min(duplen, n - i)
        period = next(
            (p for p in range(1, m + 1) if work[i : i + p] == work[i + p : i + 2 * p]),
            None,
        )
        if period is None:
            i += 1
            continue
        p = period
        j = i + 2 * p
        work[i + p : j] = [FIN] * p
        while j < n and work[j : j + p] == work[i : i + p]:
            work[j : j + p] = [FIN] * p
            j += p
        i = j
    head = work[0]
    return [head] + [x for x in work[1:n] if x != FIN]


def dedup(seq: Sequence[int], duplen: int) -> list[int]:
    """Collapse runs of a repeated block at most ``duplen`` long into one block."""
    return _dedup(seq, len(seq), duplen)


def accepts(machine: Machine, options: EnumOptions) -> Optional[int]:
    """Run ``machine`` from a reset state against the filters in ``options``.

    Returns the number of steps run if the machine is kept, otherwise None.
    """
    if options.exclude_separable and is_separable(machine, options.flags):
        return None
    machine.reset()
    nstep = 0
    minrep, zindex, duplen = options.min_rep, options.zindex, options.duplen
    minrun, maxrun = options.min_run, options.max_run
    if minrep > 1:
        i = 1
        while i < zindex and (1 << i) < minrep:
            i += 1
        n = 1 << (i - 1)
        steps: list[int] = []
        nstep += machine.run(n * 3, steps)
        while True:
            if machine.state < 0:
                break
            if is_repeating(steps[n : n * 3], minrep):
                return None
            if i == zindex or (maxrun and nstep + n * 3 > maxrun):
                break
            nstep += machine.run(n * 3, steps)
            n = 1 << i
            i += 1
        if i == zindex and duplen > 0:
            t = n * 3
            nstep += machine.run(duplen, steps)
            if machine.state >= 0:
                reduced = _dedup(steps, t, duplen)
                t = len(reduced)
                if is_repeating(reduced[t // 3 :], minrep):
                    return None
    if minrun and nstep < minrun:
        nstep += machine.run(minrun - nstep)
        if nstep < minrun:
            return None
    if maxrun:
        if nstep > maxrun:
            return None
        nstep += machine.run(maxrun - nstep)
        if nstep == maxrun and machine.state >= 0:
            return None
    return nstep


def enumerate_machines(
    options: EnumOptions, prefix: Optional[str] = None, out: Optional[TextIO] = None
) -> int:
    """Write every kept machine whose table starts with ``prefix`` to ``out``.

    Returns the number of machines written.
    """
    if out is None:
        out = sys.stdout
    try:
        iterator = MachineIterator(
            options.size, options.flags, prefix, options.length, options.rng
        )
    except ValueError:
        raise CliError("btm_iter_new: Invalid argument") from None
    randomized = bool(options.flags & Flag.RANDOM)
    cut = 2 * options.size - options.length if options.length >= 0 else 0
    remaining_out = options.max_out
    remaining_try = options.max_try
    written = 0
    for machine in iterator:
        if _stop.requested or remaining_out == 0:
            break
        if randomized:
            if remaining_try == 0:
                break
            remaining_try -= 1
        if prefix is None and options.mirror:
            instr = machine.instr(0, "0")
            if instr != FIN and instr_move(instr) == "L":
                machine.set_instr(
                    0, "0", make_instr(instr_target(instr), instr_symbol(instr), "R")
                )
        nstep = accepts(machine, options)
        if nstep is None:
            continue
        text = machine.dump_table()
        if cut > 0:
            text = text[: len(text) - cut]
        if options.append_steps:
            out.write(f"{text}\t{nstep}\n")
        else:
            out.write(f"{text}\n")
        out.flush()
        written += 1
        remaining_out -= 1
    return written


@contextlib.contextmanager
def _stop_on_signals() -> Iterator[None]:
    _stop.clear()
    previous = {}
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, _stop.handle)
    except ValueError:
        pass
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        _stop.clear()


def _warn(message: str) -> None:
    print(f"{PROG}: {message}", file=sys.stderr)


def _parse_args(args: Sequence[str]) -> tuple[Optional[EnumOptions], Optional[str], list[str]]:
    try:
        opts, operands = getopt.getopt(list(args), "cefuamsd:l:n:p:r:t:z:h")
    except getopt.GetoptError as exc:
        if exc.opt and exc.opt in "dlnprtz":
            raise CliError(f"Option -{exc.opt} requires operand") from None
        raise CliError(f"Unrecognized option: -{exc.opt}") from None
    options = EnumOptions()
    prefix: Optional[str] = None
    flag_options = {
        "-c": Flag.CYCLIC,
        "-e": Flag.NONERASING,
        "-f": Flag.EXCL_NO_FIN,
        "-u": Flag.EXCL_MULTI_FIN,
    }
    for opt, value in opts:
        if opt in flag_options:
            options.flags |= flag_options[opt]
        elif opt == "-a":
            options.append_steps = True
        elif opt == "-m":
            options.mirror = True
        elif opt == "-s":
            options.exclude_separable = True
        elif opt == "-d":
            options.duplen = parse_int(value)
        elif opt == "-l":
            options.length = parse_int(value)
        elif opt == "-n":
            options.max_out = parse_int(value)
        elif opt == "-p":
            prefix = value
        elif opt == "-r":
            options.max_try = parse_int(value)
            options.flags |= Flag.RANDOM
        elif opt == "-t":
            low, has_high, high = value.partition(",")
            options.min_run = max(parse_long(low), 0)
            if has_high:
                options.max_run = parse_long(high)
                if options.max_run < options.min_run:
                    options.max_run = 0
        elif opt == "-z":
            rep, has_index, index = value.partition(",")
            options.min_rep = parse_int(rep)
            if options.min_rep <= 0:
                continue
            if not has_index:
                raise CliError("Option -z requires two values")
            options.zindex = parse_int(index)
        elif opt == "-h":
            return None, prefix, operands
    return options, prefix, operands


def _enumerate_all(options: EnumOptions, prefix: Optional[str], out: TextIO) -> None:
    def run(start: Optional[str]) -> None:
        if _stop.requested:
            return
        written = enumerate_machines(options, start, out)
        if options.max_out > 0:
            options.max_out -= written

    if prefix is not None and prefix.strip(_BLANKS):
        run(prefix)
    elif options.flags & Flag.RANDOM:
        run(None)
    else:
        if options.min_run <= 1:
            run("f")
        if (
            options.size > 1
            and not options.max_run
            and options.min_rep < 1
            and not options.flags & Flag.CYCLIC
        ):
            if not options.mirror:
                run("o0")
                run("i0")
            run("O0")
            run("I0")
        if not options.mirror:
            run("o")
            run("i")
        run("O")
        run("I")


def _enumerate(args: Sequence[str], out: TextIO) -> int:
    options, prefix, operands = _parse_args(args)
    if options is None:
        out.write(_USAGE.format(prog=PROG))
        return 0
    if options.length >= 0:
        options.append_steps = options.exclude_separable = False
        options.zindex = options.min_run = options.max_run = 0
        options.min_rep = options.max_try = 0
    if len(operands) > 1:
        raise CliError("Too many arguments")
    if options.length < 0 and not operands:
        raise CliError("Missing argument")
    if operands:
        options.size = parse_int(operands[0])
    if options.length >= 0 and options.size < 0:
        options.size = options.length + 1
    options.length = min(options.length, options.size * 2)
    if not options.max_run:
        options.append_steps = False
    if options.flags & Flag.CYCLIC:
        options.exclude_separable = False
    with _stop_on_signals():
        _enumerate_all(options, prefix, out)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the enumerator command and return its exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    out = sys.stdout
    try:
        return _enumerate(args, out)
    except CliError as exc:
        out.flush()
        _warn(exc.message)
        return 1