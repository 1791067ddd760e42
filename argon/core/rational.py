# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import fractions
from public import public

@public
class Rational(fractions.Fraction):
    """
    Exact numeric type for physical units such as the coordinate unit of a
    layout (1 nm) or the database unit of a GDS file.

    It extends :class:`fractions.Fraction` from Python's standard library:

    - The constructor supports SI suffixes as alternative to decimal
      exponents, e.g.: Rational("1n"), Rational("0.5u").
    - str() shows Rational objects as decimal fractions with an SI suffix
      when possible, e.g. "1n", "250p".
    - repr() yields the format "R('...')".
    """

    __slots__ = []

    sisuffix = {-18: "a", -15: "f", -12: "p", -9: "n", -6: "u", -3: "m", 0:"", 3:"k", 6:"M", 9:"G", 12:"T"}
    sisuffix_rev = {c: n for n, c in sisuffix.items() if c} | {"µ": -6}

    def __new__(cls, number=0, denominator=None):
        if isinstance(number, str) and denominator is None:
            number = number.strip()
            if number and number[-1] in cls.sisuffix_rev:
                number = number[:-1] + f"e{cls.sisuffix_rev[number[-1]]}"
        return super().__new__(cls, number, denominator)

    def __repr__(self):
        return f"R('{self}')"

    def decimal_fraction(self) -> tuple[int, int]:
        """
        Returns (num, exp) such that self == num * 10**exp. Raises
        ValueError if the value has no finite decimal representation.
        """
        num, den = self.numerator, self.denominator
        if num == 0:
            return 0, 0
        exp = 0
        for factor, other in ((10, 1), (5, 2), (2, 5)):
            while den % factor == 0:
                den //= factor
                num *= other
                exp -= 1
        if den != 1:
            raise ValueError("Cannot be represented as decimal fraction.")
        while num % 10 == 0:
            num //= 10
            exp += 1
        return num, exp

    def __str__(self):
        try:
            num, exp = self.decimal_fraction()
        except ValueError:
            return f"{self.numerator}/{self.denominator}"
        if num == 0:
            return "0"
        sign = '-' if num < 0 else ''
        digits = str(abs(num))
        # Choose the SI exponent such that 1 <= mantissa < 1000:
        exp_si = 3 * ((exp + len(digits) - 1) // 3)
        shift = exp - exp_si
        if shift >= 0:
            mantissa = digits + "0" * shift
        else:
            digits = digits.rjust(-shift + 1, "0")
            mantissa = digits[:shift] + "." + digits[shift:]
        try:
            return sign + mantissa + self.sisuffix[exp_si]
        except KeyError:
            return sign + mantissa + f"e{exp_si}"

    def __mul__(self, other):
        return type(self)(super().__mul__(other))

    def __truediv__(self, other):
        return type(self)(super().__truediv__(other))

public(R = Rational) # alias
