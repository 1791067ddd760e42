# SPDX-FileCopyrightText: 2025 ORDeC contributors
# SPDX-License-Identifier: Apache-2.0

import re
from public import public
from collections.abc import Hashable
from typing import Optional

@public
class Directory:
    """
    Assigns names that are unique within a domain: compiled cells (domain
    None), which become GDS structure names, and sibling scopes of a cell
    (domain: the parent scope id).

    Cell names are lowercase and restricted to a-z, 0-9 and underscore, as
    some layout tools treat structure names case-insensitively.
    """

    def __init__(self):
        self.obj_of_name: dict[tuple[Optional[Hashable], str], Hashable] = {}
        self.name_of_obj: dict[Hashable, str] = {}

    def unique_name(self, basename: str, obj: Hashable, domain: Optional[Hashable]) -> str:
        """
        Returns the name of obj, allocating one if obj has none yet.

        The first object asking for basename in a domain gets it unchanged,
        later ones get basename0, basename1 and so on. An object that is
        already named keeps its name, which must start with basename.
        """
        if obj in self.name_of_obj:
            name = self.name_of_obj[obj]
            if not name.startswith(basename):
                raise ValueError(f"{obj!r} is already named {name!r}, not derived from {basename!r}.")
            return name
        name = basename
        suffix = 0
        while (domain, name) in self.obj_of_name:
            name = f"{basename}{suffix}"
            suffix += 1
        self.obj_of_name[domain, name] = obj
        self.name_of_obj[obj] = name
        return name

    def name_cell(self, cell_id: Hashable, cell_name: str) -> str:
        """
        Structure name of a compiled cell. Compiles of the same cell with
        different parameters get numbered names (pad, pad0, ...).
        """
        basename = re.sub(r"[^a-z0-9_]", "_", cell_name.lower())
        return self.unique_name(basename, ('cell', cell_id), None)

    def existing_name(self, obj: Hashable) -> str:
        return self.name_of_obj[obj]

    def obj_of(self, name: str, domain: Optional[Hashable] = None) -> Hashable:
        return self.obj_of_name[domain, name]
