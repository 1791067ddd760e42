# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

"""
Geometry of solved layouts: points, rectangles, the eight orientations an
instance can be placed in (D4) and placement transformations (TD4F).

Solved coordinates are floats in layout units. All types are immutable
tuples, so they can be compared and hashed.
"""
from enum import Enum
from public import public
from collections import namedtuple
from typing import Optional

@public
class Vec2F(tuple):
    """Point or displacement in the layout plane."""
    __slots__ = ()

    def __new__(cls, x, y):
        return tuple.__new__(cls, (float(x), float(y)))

    x = property(lambda self: self[0])
    y = property(lambda self: self[1])

    def __add__(self, other):
        # Plain (x, y) tuples are accepted as well.
        ox, oy = other
        return Vec2F(self.x + ox, self.y + oy)

    def __sub__(self, other):
        ox, oy = other
        return Vec2F(self.x - ox, self.y - oy)

    def __neg__(self):
        return Vec2F(-self.x, -self.y)

    def __mul__(self, scalar):
        return Vec2F(scalar * self.x, scalar * self.y)

    __rmul__ = __mul__

    def __repr__(self):
        return f"Vec2F({self.x!r}, {self.y!r})"

    def transl(self) -> 'TD4F':
        """Translation by this vector."""
        return TD4F(transl=self)

@public
class Rect4F(tuple):
    """
    Axis-aligned rectangle with x0 <= x1 and y0 <= y1. Degenerate
    (zero width or height) rectangles are allowed.
    """
    __slots__ = ()

    def __new__(cls, x0, y0, x1, y1):
        x0, y0, x1, y1 = float(x0), float(y0), float(x1), float(y1)
        if x0 > x1:
            raise ValueError("x0 is greater than x1.")
        if y0 > y1:
            raise ValueError("y0 is greater than y1.")
        return tuple.__new__(cls, (x0, y0, x1, y1))

    x0 = property(lambda self: self[0])
    y0 = property(lambda self: self[1])
    x1 = property(lambda self: self[2])
    y1 = property(lambda self: self[3])

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def southwest(self) -> Vec2F:
        return Vec2F(self.x0, self.y0)

    @property
    def northeast(self) -> Vec2F:
        return Vec2F(self.x1, self.y1)

    def __add__(self, other):
        raise TypeError("Rect4F cannot be added.")

    def __repr__(self):
        return f"Rect4F(x0={self.x0!r}, y0={self.y0!r}, x1={self.x1!r}, y1={self.y1!r})"

    def union(self, other: 'Rect4F') -> 'Rect4F':
        return Rect4F(min(self.x0, other.x0), min(self.y0, other.y0),
            max(self.x1, other.x1), max(self.y1, other.y1))

@public
def bbox_union(a: Optional[Rect4F], b: Optional[Rect4F]) -> Optional[Rect4F]:
    """
    Union of two optional bounding boxes. None is the identity: the union
    of None and None is None, and the union with a single box returns that
    box unchanged.
    """
    if a is None:
        return b
    if b is None:
        return a
    return a.union(b)

@public
class TD4F(tuple):
    """
    Orientation followed by translation. Multiply with a :class:`Vec2F`,
    :class:`Rect4F`, :class:`D4` or another TD4F to apply it.
    """
    __slots__ = ()

    def __new__(cls, transl: Optional[Vec2F] = None, d4: Optional['D4'] = None):
        return tuple.__new__(cls, (
            Vec2F(0, 0) if transl is None else transl,
            D4.R0 if d4 is None else d4,
        ))

    transl = property(lambda self: self[0], doc="Translation vector.")
    d4 = property(lambda self: self[1], doc="Orientation, applied before the translation.")

    @classmethod
    def placement(cls, x: float, y: float, rot: int = 0, reflect: bool = False) -> 'TD4F':
        """
        Transformation of an instance placement: rotation by rot quarter
        turns, then mirroring (if reflect), then translation by (x, y).
        """
        return cls(transl=Vec2F(x, y), d4=D4.from_placement(rot, reflect))

    def __mul__(self, other):
        t = self.transl
        if isinstance(other, Vec2F):
            x, y = self.d4.apply(other.x, other.y)
            return Vec2F(t.x + x, t.y + y)
        elif isinstance(other, Rect4F):
            x0, y0, x1, y1 = self.d4.apply_rect(*other)
            return Rect4F(x0 + t.x, y0 + t.y, x1 + t.x, y1 + t.y)
        elif isinstance(other, D4):
            return TD4F(t, self.d4 * other)
        elif isinstance(other, TD4F):
            return TD4F(self * other.transl, self.d4 * other.d4)
        return NotImplemented

    def __add__(self, other):
        raise TypeError("TD4F cannot be added.")

    def det(self) -> int:
        return self.d4.det()

    def __repr__(self):
        return f"TD4F(transl={self.transl!r}, d4={self.d4!r})"

D4Tuple = namedtuple('D4Tuple', ['flipxy', 'negx', 'negy'])

@public
class D4(Enum):
    """
    Dihedral group D4: the four quarter-turn rotations and the four
    mirrored orientations. An element maps (x, y) by optionally swapping
    x and y, then optionally negating either coordinate.
    """

    R0   = D4Tuple(flipxy=False, negx=False, negy=False) #: identity
    R90  = D4Tuple(flipxy=True,  negx=True,  negy=False) #: counterclockwise quarter turn
    R180 = D4Tuple(flipxy=False, negx=True,  negy=True)
    R270 = D4Tuple(flipxy=True,  negx=False, negy=True)
    MX   = D4Tuple(flipxy=False, negx=False, negy=True) #: mirror along the X axis (y -> -y)
    MY   = D4Tuple(flipxy=False, negx=True,  negy=False) #: mirror along the Y axis (x -> -x)
    MX90 = D4Tuple(flipxy=True,  negx=False, negy=False) #: MX, then R90
    MY90 = D4Tuple(flipxy=True,  negx=True,  negy=True) #: MY, then R90

    def __repr__(self):
        return f'D4.{self.name}'

    @classmethod
    def rotation(cls, quarter_turns: int) -> 'D4':
        """Counterclockwise rotation by quarter_turns * 90 degrees."""
        return (cls.R0, cls.R90, cls.R180, cls.R270)[quarter_turns % 4]

    @classmethod
    def from_placement(cls, rot: int, reflect: bool) -> 'D4':
        """Rotation by rot quarter turns followed by mirroring along the X axis."""
        d4 = cls.rotation(rot)
        return cls.MX * d4 if reflect else d4

    def apply(self, x, y):
        """
        Maps the point (x, y). Only unary minus is required of the
        coordinates, so this works on linear expressions as well.
        """
        flipxy, negx, negy = self.value
        if flipxy:
            x, y = y, x
        return (-x if negx else x), (-y if negy else y)

    def apply_rect(self, x0, y0, x1, y1):
        """
        Maps the rectangle (x0, y0, x1, y1). Corners are swapped according
        to the orientation, not by comparing values, so the result keeps
        x0 <= x1 and y0 <= y1 for coordinates that cannot be compared.
        """
        ax, ay = self.apply(x0, y0)
        bx, by = self.apply(x1, y1)
        _, negx, negy = self.value
        if negx:
            ax, bx = bx, ax
        if negy:
            ay, by = by, ay
        return ax, ay, bx, by

    def __mul__(self, other):
        if isinstance(other, D4):
            flipxy, negx, negy = self.value
            onegx, onegy = other.value.negx, other.value.negy
            if flipxy:
                onegx, onegy = onegy, onegx
            return D4(D4Tuple(flipxy ^ other.value.flipxy, negx ^ onegx, negy ^ onegy))
        elif isinstance(other, TD4F):
            return TD4F(d4=self) * other
        elif isinstance(other, Vec2F):
            return Vec2F(*self.apply(other.x, other.y))
        raise TypeError(f"Cannot multiply {self!r} with {other!r}.")

    def det(self) -> int:
        """1 if handedness is preserved, -1 if mirrored."""
        return -1 if self.value.flipxy ^ self.value.negx ^ self.value.negy else 1

    def inv(self) -> 'D4':
        # Rotations by 90 and 270 degrees are each other's inverse, all
        # other elements are involutions.
        if self is D4.R90:
            return D4.R270
        elif self is D4.R270:
            return D4.R90
        return self
