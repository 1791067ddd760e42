# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

from .errors import *
from .rational import *
from .geoprim import *
from .solver import *
from .values import *
from .output import *
from .directory import *
from .hierarchy import *
from .compiler import *
