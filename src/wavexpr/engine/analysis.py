# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Variable-usage analysis.

A formula that mentions `y` or `z` anywhere (however deeply nested) is a
multi-frame formula; everything else is single-frame. This is a pure syntactic
fact, computed once per compile.
"""

from .nodes import Node

__all__ = ["analyze"]


def analyze(node: Node) -> tuple[bool, bool]:
    """Return (uses_y, uses_z) for the tree rooted at `node`."""
    uses_y = False
    uses_z = False
    for n in node.walk():
        if n.kind == "VAR":
            if n.value == "y":
                uses_y = True
            elif n.value == "z":
                uses_z = True
    return uses_y, uses_z
