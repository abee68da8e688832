"""Enumeration of binary Turing machines in canonical form.

Machines are produced one instruction table at a time. Targets are assigned
so that states appear in order of first use, which keeps each machine
unique up to renaming its states. Flags narrow the enumeration and an
optional prefix fixes the first instructions of every table.
"""

from __future__ import annotations

import random
from typing import Iterator, Optional

from btmkit.machine import FIN, IMPLICIT_TARGET, Flag, Machine, parse_instr

_SMASK = 2
_MMASK = 1
_BLANKS = " \t"


def _skip_blanks(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _BLANKS:
        pos += 1
    return pos


class MachineIterator:
    """Walks through the instruction tables of machines with ``size`` states.

    ``prefix`` fixes the leading instructions. A ``length`` between the prefix
    length and ``2 * size`` makes the iterator vary only that many leading
    instructions, leaving the rest as FIN. ``rng`` supplies randomness in
    :attr:`Flag.RANDOM` mode; in that mode the iteration never ends.
    Raises ValueError for a negative size or an invalid prefix.
    """

    def __init__(
        self,
        size: int,
        flags: int = Flag.NONE,
        prefix: Optional[str] = None,
        length: int = -1,
        rng: Optional[random.Random] = None,
    ) -> None:
        if size < 0:
            raise ValueError(f"invalid machine size {size}")
        self._size = size
        self._flags = Flag(flags)
        if rng is None and self._flags & Flag.RANDOM:
            rng = random.Random()
        self._rng = rng
        self._table: list[int] = [FIN] * (2 * size)
        self._top: list[int] = [0] * size
        self._prefixlen = 0
        self._len = 0
        self._machine: Optional[Machine] = None
        self._dirty = True
        if size == 0:
            return
        if prefix is not None:
            self._load_prefix(prefix)
        if self._prefixlen <= length <= 2 * size:
            self._len = length
        else:
            self._len = 2 * size
        self._machine = Machine()
        self._fill(0)

    def _load_prefix(self, prefix: str) -> None:
        size = self._size
        entries: list[int] = []
        pos = _skip_blanks(prefix, 0)
        while pos < len(prefix):
            if len(entries) >= 2 * size:
                raise ValueError(f"prefix too long: {prefix!r}")
            try:
                instr, pos = parse_instr(prefix, pos)
            except ValueError as exc:
                raise ValueError(f"invalid prefix {prefix!r}: {exc}") from exc
            if instr != FIN and instr >> 2 == IMPLICIT_TARGET:
                instr = ((len(entries) // 2 + 1) % size) << 2 | (instr & 3)
            entries.append(instr)
            pos = _skip_blanks(prefix, pos)
        self._table[: len(entries)] = entries
        self._prefixlen = len(entries)
        if not self._prefix_ok():
            raise ValueError(f"invalid prefix {prefix!r}")
        n = 1
        for i, instr in enumerate(entries):
            if not i & 1:
                self._top[i >> 1] = n
            if instr >> 2 == n:
                n += 1

    def _prefix_ok(self) -> bool:
        table = self._table
        size = self._size
        flags = self._flags
        prefixlen = self._prefixlen
        if not prefixlen:
            return True
        n = 1
        for i in range(prefixlen):
            if i >> 1 >= n or table[i] >> 2 > min(n, size - 1):
                return False
            if table[i] >> 2 == n:
                n += 1
        last = prefixlen - 1
        if (
            last & 1
            and n == (last >> 1) + 1
            and n < size
            and table[last - 1] >> 2 < n
            and table[last] >> 2 < n
        ):
            return False
        nfin = 0
        for i, instr in enumerate(table[:prefixlen]):
            if instr == FIN:
                if flags & Flag.EXCL_MULTI_FIN and nfin:
                    return False
                nfin += 1
                continue
            if flags & Flag.NONERASING and i & 1 and not instr & _SMASK:
                return False
            if flags & Flag.CYCLIC and instr >> 2 != ((i >> 1) + 1) % size:
                return False
        if flags & Flag.EXCL_NO_FIN and prefixlen == size * 2 and not nfin:
            return False
        return True

    def _fin_roll(self, hadfin: bool, i: int) -> bool:
        span = 2 * self._size
        if self._flags & Flag.EXCL_NO_FIN and not hadfin:
            span -= i
        return self._rng.randrange(span) == 0

    def _fill(self, start: int) -> None:
        """Fill the table from ``start`` with the first candidate instructions."""
        if start >= self._len:
            return
        table = self._table
        top = self._top
        size = self._size
        flags = self._flags
        randomized = bool(flags & Flag.RANDOM)
        start = max(start, self._prefixlen)
        hadfin = FIN in table[:start]
        q = start >> 1
        if start & 1:
            n = top[q]
            n += table[start - 1] >> 2 == n
        elif q:
            n = top[q - 1]
            n += table[start - 2] >> 2 == n
            n += table[start - 1] >> 2 == n
        else:
            n = 1
        for i in range(start, self._len):
            q = i >> 1
            odd = bool(i & 1)
            if not odd:
                top[q] = n
            if odd and n == q + 1 and n < size:
                instr = n << 2
                if randomized:
                    instr |= self._rng.randrange(4)
                if flags & Flag.NONERASING:
                    instr |= _SMASK
                table[i] = instr
                n += 1
                continue
            if (not flags & Flag.EXCL_MULTI_FIN or not hadfin) and (
                not randomized or self._fin_roll(hadfin, i)
            ):
                table[i] = FIN
                hadfin = True
                continue
            instr = self._rng.randrange(4) if randomized else 0
            if flags & Flag.CYCLIC:
                instr |= ((q + 1) % size) << 2
            elif randomized:
                instr |= self._rng.randrange(min(n + 1, size)) << 2
            if instr >> 2 == n:
                n += 1
            if odd and flags & Flag.NONERASING:
                instr |= _SMASK
            table[i] = instr

    def advance(self) -> "MachineIterator":
        """Move to the next machine; after the last one :meth:`current` is None."""
        if self._machine is None:
            return self
        self._dirty = True
        flags = self._flags
        if flags & Flag.RANDOM:
            self._fill(0)
            return self
        table = self._table
        size = self._size
        prefixlen = self._prefixlen
        nonerasing = bool(flags & Flag.NONERASING)
        cyclic = bool(flags & Flag.CYCLIC)

        for i in range(self._len - 1, prefixlen - 1, -1):
            instr = table[i]
            if instr == FIN:
                continue
            keep_symbol = bool(i & 1) and nonerasing
            if instr & 3 == 3:
                table[i] = instr & ~_MMASK if keep_symbol else instr & ~3
                continue
            table[i] = instr | _MMASK if keep_symbol else instr + 1
            return self

        i = self._len
        if i == 2 * size:
            i -= 1
            if i >= prefixlen:
                instr = table[i]
                if instr != FIN:
                    if not cyclic and instr >> 2 < size - 1:
                        table[i] = instr + 4
                        return self
                elif not flags & Flag.EXCL_NO_FIN or FIN in table[:i]:
                    table[i] = _SMASK if nonerasing else 0
                    return self

        i -= 1
        while i >= prefixlen:
            q = i >> 1
            n = self._top[q]
            if i & 1 and table[i - 1] >> 2 == n:
                n += 1
            if cyclic or (i & 1 and n == q + 1 and n < size):
                if table[i] == FIN:
                    table[i] = ((q + 1) % size) << 2
                    break
            elif table[i] >> 2 < min(n, size - 1):
                table[i] += 4
                break
            i -= 1

        if i < prefixlen:
            self._machine = None
            return self
        if i & 1 and nonerasing:
            table[i] |= _SMASK
        self._fill(i + 1)
        return self

    def current(self) -> Optional[Machine]:
        """Return the machine holding the current table, or None when exhausted."""
        machine = self._machine
        if machine is None:
            return None
        if self._dirty:
            table = self._table
            machine._table = [
                [table[2 * q], table[2 * q + 1]] for q in range(self._size)
            ]
            machine._size = self._size
            self._dirty = False
        return machine

    def __iter__(self) -> Iterator[Machine]:
        machine = self.current()
        while machine is not None:
            yield machine
            self.advance()
            machine = self.current()