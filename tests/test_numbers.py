import pytest

from btmkit.numbers import CliError, parse_int, parse_long


@pytest.mark.parametrize("n", [0, 1, 42, -17, 2**31 - 1, -(2**31)])
def test_parse_int_decimal_round_trip(n):
    assert parse_int(str(n)) == n


@pytest.mark.parametrize("n", [1, 31, 255, 0x7FFF_FFFF])
def test_parse_int_hex_round_trip(n):
    assert parse_int(hex(n)) == n
    assert parse_int(hex(n).upper().replace("0X", "0x")) == n


@pytest.mark.parametrize("n", [1, 8, 511, 4095])
def test_parse_int_octal_round_trip(n):
    assert parse_int("0" + format(n, "o")) == n


def test_parse_int_negative_hex():
    assert parse_int("-" + hex(300)) == -300


def test_parse_int_allows_surrounding_blanks():
    assert parse_int(" 7 \t") == 7


def test_parse_int_empty_is_zero():
    assert parse_int("") == 0


@pytest.mark.parametrize("text", ["12abc", "abc", "3 4", "0x", "09"])
def test_parse_int_trailing_characters(text):
    with pytest.raises(CliError) as info:
        parse_int(text)
    assert "Trailing characters" in info.value.message


@pytest.mark.parametrize("n", [2**31, -(2**31) - 1, 2**40])
def test_parse_int_unrepresentable(n):
    with pytest.raises(CliError) as info:
        parse_int(str(n))
    assert "unrepresentable as int" in str(info.value)


def test_parse_int_out_of_long_range():
    with pytest.raises(CliError) as info:
        parse_int(str(2**70))
    assert "out of range" in str(info.value)


@pytest.mark.parametrize("n", [2**40, -(2**50), 2**63 - 1, -(2**63)])
def test_parse_long_round_trip(n):
    assert parse_long(str(n)) == n


@pytest.mark.parametrize("n", [2**63, -(2**63) - 1])
def test_parse_long_overflow(n):
    with pytest.raises(CliError) as info:
        parse_long(str(n))
    assert "out of range" in str(info.value)


def test_parse_long_trailing_characters():
    with pytest.raises(CliError) as info:
        parse_long("100,200")
    assert "`,200'" in str(info.value)