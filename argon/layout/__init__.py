# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

from .lyp import *
from .gds_out import *

# Without __all__, Sphinx does not document the imported stuff.
__all__ = [
    'GdsLayerSpec',
    'LayerProperty',
    'GdsMap',
    'read_lyp',
    'write_gds',
    'gds_str',
    'gds_str_from_file',
    'gds_str_from_output',
]
