"""Name matching between independently queried entity sets.

Error statements are not linked to job-map steps or core jobs by a graph
relationship; they carry lists of step / job names instead. Those lists are
matched against the actual names with a deliberately permissive rule:
case-insensitive containment either way, or any whitespace token of one
string occurring inside the other.
"""

from typing import Callable, Iterable, Optional, TypeVar

from node42.records import ErrorStatementRecord

T = TypeVar("T")


def names_related(name: str, related: str) -> bool:
    """True if two names refer to the same step/job under the permissive rule.

    Symmetric: names_related(a, b) == names_related(b, a).
    """
    a = name.lower()
    b = related.lower()
    if b in a or a in b:
        return True
    if any(token in a for token in b.split()):
        return True
    return any(token in b for token in a.split())


def related_items(name: str, items: Iterable[T],
                  get_related: Callable[[T], Optional[list[str]]]) -> list[T]:
    """Items whose related-name list matches ``name``, in input order.

    A related-name list of None (missing or malformed property) never matches.
    """
    matched = []
    for item in items:
        related = get_related(item)
        if not isinstance(related, list):
            continue
        if any(isinstance(r, str) and names_related(name, r) for r in related):
            matched.append(item)
    return matched


def errors_for_step(step_name: str, statements: list[ErrorStatementRecord]) -> list[ErrorStatementRecord]:
    return related_items(step_name, statements, lambda es: es.related_job_map_steps)


def errors_for_core_job(job_name: str, statements: list[ErrorStatementRecord]) -> list[ErrorStatementRecord]:
    return related_items(job_name, statements, lambda es: es.related_core_jobs)
