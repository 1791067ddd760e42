# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import pytest
from argon.core import *
from argon.lang import parse
from argon.layout import GdsMap, GdsLayerSpec

#: Layer enum prepended to the sources compiled through the fixtures below.
LAYERS = "enum Layer { Met1, Via1, Met2 }\n"

@pytest.fixture
def compile_src():
    """Parses and compiles an Argon program, with the Layer enum in scope."""
    def compile_src(src, cell='top', params=None, **kwargs):
        return compile(parse(LAYERS + src), cell, params, **kwargs)
    return compile_src

@pytest.fixture
def compile_valid(compile_src):
    """Like compile_src, but expects a valid output and returns its CompiledData."""
    def compile_valid(src, cell='top', params=None, **kwargs):
        output = compile_src(src, cell, params, **kwargs)
        if not output.is_valid():
            errors = "\n".join(f"{type(e).__name__}: {e}" for e in output.errors)
            pytest.fail(f"Compile of {cell!r} failed:\n{errors}")
        return output.data
    return compile_valid

@pytest.fixture
def layer_map():
    return GdsMap({
        'Met1': GdsLayerSpec(8, 0),
        'Via1': GdsLayerSpec(19, 0),
        'Met2': GdsLayerSpec(10, 0),
    })

@pytest.fixture
def layers():
    """The source prepended by compile_src, for mapping spans back to text."""
    return LAYERS
