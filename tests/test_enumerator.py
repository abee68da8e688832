import io
import random

import pytest

from btmkit.enumerator import (
    EnumOptions,
    accepts,
    dedup,
    enumerate_machines,
    is_repeating,
    is_separable,
    main,
)
from btmkit.machine import Flag, Machine


def _machine(table):
    machine = Machine()
    machine.load_table(table)
    return machine


def _lines(capsys):
    return capsys.readouterr().out.splitlines()


@pytest.mark.parametrize(
    "seq, minrep, expected",
    [
        ([1, 2, 1, 2, 1, 2], 3, True),
        ([1, 2, 3, 1, 2, 3], 3, False),
        ([1, 2, 3, 1, 2, 3], 2, True),
        ([7, 7, 7, 7], 4, True),
        ([1, 2, 2, 1], 2, False),
    ],
)
def test_is_repeating(seq, minrep, expected):
    assert is_repeating(seq, minrep) is expected


def test_is_repeating_empty_sequence():
    assert is_repeating([], 2) is False


def test_dedup_single_element_runs():
    assert dedup([5, 1, 1, 1, 2], 1) == [5, 1, 2]


def test_dedup_pair_runs():
    assert dedup([1, 2, 1, 2, 1, 2, 3], 2) == [1, 2, 3]


def test_dedup_without_repeats_keeps_sequence():
    seq = [1, 2, 3, 4, 5]
    assert dedup(seq, 3) == seq


def test_dedup_zero_duplen_keeps_sequence():
    seq = [4, 4, 4, 4]
    assert dedup(seq, 0) == seq


def test_dedup_is_idempotent_and_shrinks():
    seq = [3, 1, 2, 1, 2, 1, 2, 9, 9, 9, 4]
    once = dedup(seq, 2)
    assert len(once) <= len(seq)
    assert once[0] == seq[0]
    assert dedup(once, 2) == once


def test_dedup_empty():
    assert dedup([], 2) == []


def test_separable_self_loop_state():
    machine = _machine("ofo1o1")
    assert is_separable(machine, Flag.NONE) is True
    assert is_separable(machine, Flag.EXCL_NO_FIN) is True


def test_separable_depends_on_fin_flag():
    machine = _machine("ofIf")
    assert is_separable(machine, Flag.NONE) is True
    assert is_separable(machine, Flag.EXCL_NO_FIN) is False


def test_accepts_default_runs_nothing():
    assert accepts(_machine("ff"), EnumOptions(size=1)) == 0


def test_accepts_rejects_short_runner():
    assert accepts(_machine("ff"), EnumOptions(size=1, min_run=2)) is None


def test_accepts_halting_machine_reports_its_steps():
    reference = _machine("ff")
    expected = reference.run(5)
    assert accepts(_machine("ff"), EnumOptions(size=1, max_run=5)) == expected


def test_accepts_rejects_machine_running_past_max():
    assert accepts(_machine("oo0"), EnumOptions(size=1, max_run=10)) is None


def test_accepts_min_run_on_endless_machine():
    assert accepts(_machine("oo0"), EnumOptions(size=1, min_run=10)) == 10


def test_accepts_rejects_repeating_machine():
    options = EnumOptions(size=1, min_rep=2, zindex=2)
    assert accepts(_machine("oo0"), options) is None


def test_accepts_keeps_halting_machine_under_repetition_check():
    options = EnumOptions(size=1, min_rep=2, zindex=2, duplen=3)
    reference = _machine("ff")
    expected = reference.run(10)
    assert accepts(_machine("ff"), options) == expected


def test_accepts_excludes_separable():
    options = EnumOptions(size=2, exclude_separable=True)
    assert accepts(_machine("ofo1o1"), options) is None


def test_enumerate_machines_with_fin_prefix():
    out = io.StringIO()
    written = enumerate_machines(EnumOptions(size=1), "f", out)
    lines = out.getvalue().splitlines()
    assert written == len(lines)
    assert set(lines) == {"ff", "fo", "fO", "fi", "fI"}


def test_enumerate_machines_respects_max_out():
    out = io.StringIO()
    written = enumerate_machines(EnumOptions(size=2, max_out=3), "O", out)
    assert written == 3
    assert len(out.getvalue().splitlines()) == 3


def test_enumerate_machines_invalid_prefix():
    out = io.StringIO()
    with pytest.raises(Exception, match="btm_iter_new"):
        enumerate_machines(EnumOptions(size=1), "x", out)
    assert out.getvalue() == ""


def test_enumerate_machines_random_mode():
    out = io.StringIO()
    options = EnumOptions(size=2, flags=Flag.RANDOM, max_try=5, rng=random.Random(7))
    written = enumerate_machines(options, None, out)
    lines = out.getvalue().splitlines()
    assert written == len(lines)
    assert written <= 5
    for line in lines:
        machine = _machine(line)
        assert machine.size == 2
        assert machine.dump_table() == line


def test_main_output_round_trips_and_is_unique(capsys):
    assert main(["2"]) == 0
    lines = _lines(capsys)
    assert lines
    assert len(lines) == len(set(lines))
    for line in lines:
        machine = _machine(line)
        assert machine.size == 2
        assert machine.dump_table() == line


def test_main_max_out(capsys):
    assert main(["-n", "2", "2"]) == 0
    assert len(_lines(capsys)) == 2


def test_main_append_steps_matches_runs(capsys):
    assert main(["-a", "-t", "0,5", "2"]) == 0
    lines = _lines(capsys)
    assert lines
    for line in lines:
        table, steps = line.split("\t")
        machine = _machine(table)
        assert machine.run(5) == int(steps)
        assert machine.state < 0


def test_main_prefix_lengths(capsys):
    assert main(["-l", "1", "1"]) == 0
    lines = _lines(capsys)
    assert lines
    assert len(lines) == len(set(lines))
    assert all(len(line) == 1 and line in "foOiI" for line in lines)


def test_main_mirror_avoids_left_first_moves(capsys):
    assert main(["-m", "2"]) == 0
    lines = _lines(capsys)
    assert lines
    assert all(line[0] not in "oi" for line in lines)


def test_main_cyclic_has_implicit_targets_only(capsys):
    assert main(["-c", "2"]) == 0
    lines = _lines(capsys)
    assert lines
    assert all(not any(ch.isdigit() for ch in line) for line in lines)


def test_main_nonerasing_writes_one_on_one(capsys):
    assert main(["-e", "2"]) == 0
    lines = _lines(capsys)
    assert lines
    for line in lines:
        machine = _machine(line)
        for q in range(machine.size):
            instr = machine.instr(q, "1")
            assert instr < 0 or instr & 2


def test_main_explicit_prefix(capsys):
    assert main(["-p", "I", "2"]) == 0
    lines = _lines(capsys)
    assert lines
    assert all(line.startswith("I") for line in lines)


def test_main_help(capsys):
    assert main(["-h"]) == 0
    assert capsys.readouterr().out.startswith("usage: btm-enum")


def test_main_missing_argument(capsys):
    assert main([]) == 1
    assert "Missing argument" in capsys.readouterr().err


def test_main_too_many_arguments(capsys):
    assert main(["1", "2"]) == 1
    assert "Too many arguments" in capsys.readouterr().err


def test_main_z_requires_two_values(capsys):
    assert main(["-z", "2", "1"]) == 1
    assert "Option -z requires two values" in capsys.readouterr().err


def test_main_missing_operand(capsys):
    assert main(["-n"]) == 1
    assert "Option -n requires operand" in capsys.readouterr().err


def test_main_unrecognized_option(capsys):
    assert main(["-x", "1"]) == 1
    assert "Unrecognized option: -x" in capsys.readouterr().err


def test_main_bad_size(capsys):
    assert main(["1x"]) == 1
    assert "Trailing characters" in capsys.readouterr().err