# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

# argon.core must be imported before argon.lang.
from .core import *
from .lang import parse, parse_file, resolve
