# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import pytest
from argon import Rational as R
from fractions import Fraction

def test_str_to_rational():
    assert R("0.125") == Fraction(1, 8)
    assert R("10000") == Fraction(10000, 1)
    assert R("2e9") == Fraction(2000000000, 1)
    assert R("3e-5") == Fraction(3, 100000)
    assert R("123k") == Fraction(123000, 1)
    assert R("72p") == Fraction(72, 1000000000000)
    assert R("1n") == Fraction(1, 1000000000)
    assert R("0.5u") == Fraction(1, 2000000)
    assert R("1µ") == R("1u")
    assert R(" 5m ") == Fraction(1, 200)

@pytest.mark.parametrize('n', [
    "1/3",
    "123k",
    "123m",
    "1n",
    "250p",
    "12.5u",
    "3.5",
    "999.9",
    "-2m",
    "0",
])
def test_rational_to_str(n):
    assert str(R(n)) == n

def test_rational_to_str_normalizes():
    assert str(R("0.001n")) == "1p"
    assert str(R("1000")) == "1k"
    assert str(R("1e20")) == "100e18"
    assert repr(R("1n")) == "R('1n')"

def test_decimal_fraction():
    assert R("250p").decimal_fraction() == (25, -11)
    assert R(0).decimal_fraction() == (0, 0)
    with pytest.raises(ValueError):
        R(1, 3).decimal_fraction()

def test_rational_op_types():
    assert type(R(1) * R(1)) == R
    assert type(R(1) / R(1)) == R
    assert R("1n") / R("1u") == R("1m")
