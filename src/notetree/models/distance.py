"""
Vector Distance Expression

``l2_distance(column, vector)`` compiles to pgvector's ``<->`` operator on
PostgreSQL and to the ``vector_l2_distance`` SQL function on SQLite, where
``sqlite_l2_distance`` is registered on every connection.

NULL on either side yields NULL, so notes without an embedding never satisfy
a ``distance < threshold`` filter.
"""

from __future__ import annotations

import json
import math
from typing import Any

from sqlalchemy import Float
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement


class l2_distance(FunctionElement):  # noqa: N801 - SQL function naming
    """Euclidean distance between two vector expressions."""

    type = Float()
    inherit_cache = True


@compiles(l2_distance)
def _compile_l2_distance(element: l2_distance, compiler: Any, **kw: Any) -> str:
    left, right = list(element.clauses)
    return f"({compiler.process(left, **kw)} <-> {compiler.process(right, **kw)})"


@compiles(l2_distance, "sqlite")
def _compile_l2_distance_sqlite(
    element: l2_distance, compiler: Any, **kw: Any
) -> str:
    left, right = list(element.clauses)
    return (
        f"vector_l2_distance({compiler.process(left, **kw)}, "
        f"{compiler.process(right, **kw)})"
    )


def sqlite_l2_distance(left: str | None, right: str | None) -> float | None:
    """
    SQLite implementation of ``<->``.

    Both arguments arrive in pgvector's text form (``[1.0,2.0,...]``).
    """
    if left is None or right is None:
        return None
    a = json.loads(left)
    b = json.loads(right)
    if len(a) != len(b):
        return None
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b, strict=True)))
