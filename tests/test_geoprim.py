# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

from argon.core.geoprim import Vec2F, TD4F, Rect4F, D4, bbox_union
import pytest

def test_D4():
    assert D4.R0   * D4.R0   == D4.R0
    assert D4.R90  * D4.R90  == D4.R180
    assert D4.R180 * D4.R90  == D4.R270
    assert D4.R270 * D4.R90  == D4.R0
    assert D4.MX   * D4.MX   == D4.R0
    assert D4.MX   * D4.R90  == D4.MY90

    assert repr(D4.MX90) == 'D4.MX90'

    for a in D4:
        assert a.inv() * a == D4.R0
        assert a * a.inv() == D4.R0
        assert a.det() == (1 if a in (D4.R0, D4.R90, D4.R180, D4.R270) else -1)

def test_D4_apply():
    assert D4.R0 * Vec2F(12, 34) == Vec2F(12, 34)
    assert D4.R90 * Vec2F(12, 34) == Vec2F(-34, 12)
    assert D4.R180 * Vec2F(12, 34) == Vec2F(-12, -34)
    assert D4.R270 * Vec2F(12, 34) == Vec2F(34, -12)
    assert D4.MY * Vec2F(12, 34) == Vec2F(-12, 34)
    assert D4.MY90 * Vec2F(12, 34) == Vec2F(-34, -12)
    assert D4.MX * Vec2F(12, 34) == Vec2F(12, -34)
    assert D4.MX90 * Vec2F(12, 34) == Vec2F(34, 12)

@pytest.mark.parametrize('rot', range(4))
@pytest.mark.parametrize('reflect', [False, True])
def test_D4_from_placement(rot, reflect):
    d4 = D4.from_placement(rot, reflect)
    p = Vec2F(3, 1)
    expected = D4.R0 * p
    for _ in range(rot):
        expected = D4.R90 * expected
    if reflect:
        expected = D4.MX * expected
    assert d4 * p == expected

def test_D4_rotation():
    assert D4.rotation(0) == D4.R0
    assert D4.rotation(3) == D4.R270
    assert D4.rotation(5) == D4.R90
    assert D4.rotation(-1) == D4.R270

def test_TD4F():
    assert TD4F() * TD4F() == TD4F()

    assert Vec2F(77, -9).transl() * Vec2F(1, 5) == Vec2F(78, -4)
    assert Vec2F(-10, 2).transl() * Vec2F(77, -9).transl() * Vec2F(1, 5) == Vec2F(68, -2)

    assert (D4.R90 * Vec2F(77, -9).transl()) * Vec2F(1, 5) == Vec2F(4, 78)
    assert Vec2F(77, -9).transl() * (D4.R90 * Vec2F(1, 5)) == Vec2F(72, -8)
    assert (Vec2F(77, -9).transl() * D4.R90) * Vec2F(1, 5) == Vec2F(72, -8)

    t1 = TD4F(Vec2F(1, 2), D4.MX)
    t2 = TD4F(Vec2F(5, 6), D4.R90)

    assert repr(t1) == "TD4F(transl=Vec2F(1.0, 2.0), d4=D4.MX)"

    with pytest.raises(AttributeError):
        t1.hello = 'world'
    with pytest.raises(TypeError):
        t1 + t2

    assert t1 * t2 == TD4F(Vec2F(6, -4), D4.MY90)
    assert t1.det() == -1

def test_TD4F_placement():
    t = TD4F.placement(100, 50, rot=1, reflect=True)
    assert t.d4 == D4.MY90
    assert t * Vec2F(10, 0) == Vec2F(100, 40)

@pytest.mark.parametrize('d4', list(D4))
def test_transform_rect(d4):
    t = TD4F(Vec2F(7, -3), d4)
    r = Rect4F(1, 2, 20, 10)
    corners = [t * Vec2F(x, y) for x in (r.x0, r.x1) for y in (r.y0, r.y1)]
    expected = Rect4F(
        min(c.x for c in corners), min(c.y for c in corners),
        max(c.x for c in corners), max(c.y for c in corners),
    )
    assert t * r == expected

def test_Vec2F():
    v = Vec2F(1, 2)
    assert isinstance(v.x, float)

    with pytest.raises(AttributeError):
        v.hello = 'world'
    with pytest.raises(AttributeError):
        v.x = 123

    assert repr(v) == "Vec2F(1.0, 2.0)"
    assert v + (1, 1) == Vec2F(2, 3)
    assert v - Vec2F(1, 2) == Vec2F(0, 0)
    assert 2 * v == Vec2F(2, 4)

def test_Rect4F():
    r = Rect4F(1, 2, 3, 5)
    with pytest.raises(AttributeError):
        r.x0 = 123

    assert repr(r) == "Rect4F(x0=1.0, y0=2.0, x1=3.0, y1=5.0)"
    assert r.width == 2
    assert r.height == 3
    assert r.southwest == Vec2F(1, 2)
    assert r.northeast == Vec2F(3, 5)

    with pytest.raises(ValueError, match=r"x0 is greater than x1"):
        Rect4F(0, 0, -1, 0)
    with pytest.raises(ValueError, match=r"y0 is greater than y1"):
        Rect4F(0, 0, 0, -1)

def test_bbox_union():
    a = Rect4F(0, 0, 10, 10)
    b = Rect4F(-5, 2, 4, 20)

    assert bbox_union(None, None) is None
    assert bbox_union(a, None) is a
    assert bbox_union(None, b) is b
    assert bbox_union(a, b) == Rect4F(-5, 0, 10, 20)
