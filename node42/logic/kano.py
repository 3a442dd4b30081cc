"""Simulated "new learning" highlights on Kano range tables.

The features page marks a few features as changed since the previous
session. The change is synthetic: one range column of each marked feature has
every number in it raised by 5%. Deterministic given feature order.
"""

import math
import re
from typing import Iterable

from node42.models import KanoFeature

# updated_column name -> KanoFeature attribute, indexed by feature index % 4
KANO_COLUMNS = [
    ("reverse", "reverse_range"),
    ("must_be", "must_be_range"),
    ("one_dimensional", "one_dimensional_range"),
    ("attractive", "attractive_range"),
]

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def scale_numbers(text: str, factor: float = 1.05) -> str:
    """Multiply every number embedded in ``text`` by ``factor``, rounded half-up to 2 decimals."""
    def _scale(match: re.Match) -> str:
        scaled = math.floor(float(match.group(0)) * factor * 100 + 0.5) / 100
        return _format_number(scaled)
    return _NUMBER.sub(_scale, text)


def apply_new_learnings(features: Iterable[KanoFeature], indices: Iterable[int] = (1, 5, 9, 13),
                        limit: int = 15, factor: float = 1.05) -> list[KanoFeature]:
    """Return a copy of ``features`` with the simulated updates applied."""
    marked = {i for i in indices if i < limit}
    result = []
    for index, feature in enumerate(features):
        if index not in marked:
            result.append(feature)
            continue
        column, attr = KANO_COLUMNS[index % len(KANO_COLUMNS)]
        previous = getattr(feature, attr)
        result.append(feature.model_copy(update={
            attr: scale_numbers(previous, factor),
            "is_new_learning": True,
            "updated_column": column,
            "previous_value": previous,
        }))
    return result
