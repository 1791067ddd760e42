# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

from .ast import *
from .parser import parse, parse_file, format_error
from .resolve import *
