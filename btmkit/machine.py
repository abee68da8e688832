"""Binary Turing machines: instruction encoding, tables, tape and execution.

An instruction packs a transition target state, a symbol to write and a head
move into one integer: ``target << 2 | (symbol == '1') << 1 | (move == 'R')``.
The special instruction :data:`FIN` (target -1) halts the machine.
"""

from __future__ import annotations

import enum
from typing import Optional

from btmkit.numbers import _scan_int

FIN = -4
IMPLICIT_TARGET = -2
_MAX_TARGET = 1 << 29

_SMASK = 2
_MMASK = 1
_BLANKS = " \t"
_LETTER_CODES = {"o": 0, "O": _MMASK, "i": _SMASK, "I": _SMASK | _MMASK}
_CODE_LETTERS = {code: letter for letter, code in _LETTER_CODES.items()}
_INSTR_STARTS = "iIoOf"
_SYMBOLS = "01"
_MOVES = "LR"


class Flag(enum.IntFlag):
    """Options controlling machine enumeration."""

    NONE = 0
    RANDOM = 1 << 0
    CYCLIC = 1 << 1
    NONERASING = 1 << 2
    EXCL_NO_FIN = 1 << 3
    EXCL_MULTI_FIN = 1 << 4


def make_instr(q: int, s: str, m: str) -> int:
    """Pack target state ``q``, symbol ``s`` ('0'/'1') and move ``m`` ('L'/'R')."""
    return q << 2 | (s == "1") << 1 | (m == "R")


def instr_target(instr: int) -> int:
    """Return the transition target of an instruction."""
    return instr >> 2


def instr_symbol(instr: int) -> str:
    """Return the symbol an instruction writes."""
    bit = (instr & _SMASK) >> 1
    return _SYMBOLS[bit]


def instr_move(instr: int) -> str:
    """Return the head move of an instruction."""
    bit = instr & _MMASK
    return _MOVES[bit]


def _skip_blanks(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _BLANKS:
        pos += 1
    return pos


def parse_instr(text: str, pos: int = 0) -> tuple[int, int]:
    """Parse one instruction starting at ``pos``.

    Returns the instruction and the position after it. An instruction without
    an explicit target state gets target :data:`IMPLICIT_TARGET`.
    Raises ValueError on malformed input.
    """
    pos = _skip_blanks(text, pos)
    if pos >= len(text):
        raise ValueError("missing instruction")
    letter = text[pos]
    pos += 1
    if letter == "f":
        return FIN, pos
    code = _LETTER_CODES.get(letter)
    if code is None:
        raise ValueError(f"invalid instruction letter {letter!r}")
    pos = _skip_blanks(text, pos)
    if pos == len(text) or text[pos] in _INSTR_STARTS:
        return IMPLICIT_TARGET << 2 | code, pos
    value, end, overflow = _scan_int(text, pos)
    if value < 0:
        raise ValueError("negative target state")
    if overflow or value >= _MAX_TARGET:
        raise ValueError("target state out of range")
    return value << 2 | code, end


def _check_symbol(s: str) -> int:
    if s not in ("0", "1"):
        raise ValueError(f"invalid tape symbol {s!r}")
    return s == "1"


class Machine:
    """A binary Turing machine with a tape infinite in both directions."""

    def __init__(self) -> None:
        self._table: list[list[int]] = []
        self._size = 0
        self._cells: dict[int, str] = {}
        self._head = 0
        self._state = 0
        self._lo = 0
        self._hi = 0

    @property
    def size(self) -> int:
        """Number of states in the instruction table."""
        return self._size

    @property
    def state(self) -> int:
        """Current state; negative once the machine has finished."""
        return self._state

    @property
    def head(self) -> int:
        """Current head position."""
        return self._head

    def _ensure_rows(self, count: int) -> None:
        while len(self._table) < count:
            self._table.append([FIN, FIN])

    def reset(self) -> None:
        """Clear the tape, rewind the head to 0 and set the state to 0."""
        self._cells.clear()
        self._head = 0
        self._state = 0
        self._lo = self._hi = 0

    def run(self, nstep: int, record: Optional[list[int]] = None) -> int:
        """Run at most ``nstep`` steps and return how many were executed.

        If ``record`` is a list, every executed instruction is appended to it.
        """
        if nstep < 0:
            raise ValueError("negative step count")
        if self._state < 0 or nstep == 0:
            return 0
        table = self._table
        cells = self._cells
        head = self._head
        state = self._state
        fin_row = (FIN, FIN)
        for n in range(nstep):
            row = table[state] if state < len(table) else fin_row
            instr = row[cells.get(head) == "1"]
            state = instr >> 2
            if record is not None:
                record.append(instr)
            if instr == FIN:
                self._head, self._state = head, state
                return n + 1
            cells[head] = "1" if instr & _SMASK else "0"
            head += 1 if instr & _MMASK else -1
        self._head, self._state = head, state
        return nstep

    def set_state(self, q: int) -> None:
        """Set the current state; a negative state marks the machine finished."""
        if q >= self._size:
            raise ValueError(f"invalid state {q}")
        self._state = q

    def set_head(self, h: int) -> None:
        """Move the head to ``h``, filling any gap to the written range with '0'."""
        i, j = self.tape_range()
        if h < i:
            for k in range(h + 1, i):
                self._cells[k] = "0"
        elif h >= j:
            for k in range(j, h):
                self._cells[k] = "0"
        self._head = h

    def set_instr(self, q: int, s: str, instr: int) -> None:
        """Set the instruction for state ``q`` reading symbol ``s``."""
        if q < 0 or s not in ("0", "1") or (instr != FIN and instr >> 2 < 0):
            raise ValueError("invalid instruction arguments")
        column = s == "1"
        maxq = max(instr >> 2, q)
        if self._size <= maxq:
            self._ensure_rows(maxq + 1)
            self._size = maxq + 1
        old = self._table[q][column] >> 2
        self._table[q][column] = instr
        if old == self._size - 1 and instr >> 2 < old:
            self._size = 1 + max(
                (entry >> 2 for row in self._table[: self._size] for entry in row),
                default=-1,
            )

    def set_tape(self, start: int, end: int, tape: str) -> None:
        """Write the first ``end - start`` symbols of ``tape`` to cells start..end-1."""
        if tape is None or start > end:
            raise ValueError("invalid tape range")
        piece = tape[: end - start]
        if len(piece) < end - start:
            raise ValueError("tape string too short")
        if set(piece) - {"0", "1"}:
            raise ValueError("tape may hold only '0' and '1'")
        for k, symbol in enumerate(piece, start):
            self._cells[k] = symbol

    def instr(self, q: int, s: str) -> int:
        """Return the instruction invoked on reading ``s`` in state ``q``."""
        if q < 0 or q >= self._size:
            raise ValueError(f"invalid state {q}")
        return self._table[q][_check_symbol(s)]

    def cell(self, i: int) -> str:
        """Return the symbol in tape cell ``i``."""
        return self._cells.get(i, "0")

    def tape(self, start: int, end: int) -> str:
        """Return cells ``start`` (inclusive) to ``end`` (exclusive) as a string."""
        if start > end:
            raise ValueError("invalid tape range")
        i, j = self.tape_range()
        return "".join(
            self._cells.get(k, "0") if i <= k < j else "0" for k in range(start, end)
        )

    def tape_range(self) -> tuple[int, int]:
        """Return the (start, end) range of tape cells that have been written."""
        while self._lo - 1 in self._cells:
            self._lo -= 1
        while self._hi in self._cells:
            self._hi += 1
        return self._lo, self._hi

    def load_table(self, text: str) -> None:
        """Load an instruction table from its string form; ValueError if invalid."""
        entries: list[int] = []
        maxq = -1
        pos = _skip_blanks(text, 0)
        while pos < len(text):
            instr, pos = parse_instr(text, pos)
            pos = _skip_blanks(text, pos)
            q = instr >> 2
            if q == IMPLICIT_TARGET:
                q = len(entries) // 2 + 1
                instr = q << 2 | (instr & 3)
            else:
                maxq = max(maxq, q)
            entries.append(instr)
        size = len(entries) // 2
        if not entries or len(entries) % 2 or maxq >= size:
            raise ValueError(f"invalid instruction table {text!r}")
        for k in (-1, -2):
            if entries[k] >> 2 == size:
                entries[k] &= 3
        pairs = iter(entries)
        self._table = [[a, b] for a, b in zip(pairs, pairs)]
        self._size = size

    def dump_table(self) -> str:
        """Return the canonical string form of the instruction table."""
        if not self._size:
            raise ValueError("empty instruction table")
        parts = []
        for q, row in enumerate(self._table[: self._size]):
            for instr in row:
                if instr == FIN:
                    parts.append("f")
                    continue
                parts.append(_CODE_LETTERS[instr & 3])
                if instr >> 2 != (q + 1) % self._size:
                    parts.append(str(instr >> 2))
        return "".join(parts)