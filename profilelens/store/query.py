from typing import Any, Literal

from pydantic import BaseModel, Field

Operator = Literal[
    "==",
    "!=",
    "<",
    "<=",
    ">",
    ">=",
    "in",
    "not-in",
    "array-contains",
    "array-contains-any",
]

_MISSING = object()


class Filter(BaseModel):
    """A single predicate on a (possibly dotted) document field."""

    field: str
    op: Operator = "=="
    value: Any = None

    def matches(self, document: dict[str, Any]) -> bool:
        actual = get_field(document, self.field)
        if actual is _MISSING:
            # Documents lacking the field never match any operator
            return False

        try:
            if self.op == "==":
                return actual == self.value
            if self.op == "!=":
                return actual != self.value
            if self.op == "<":
                return actual is not None and actual < self.value
            if self.op == "<=":
                return actual is not None and actual <= self.value
            if self.op == ">":
                return actual is not None and actual > self.value
            if self.op == ">=":
                return actual is not None and actual >= self.value
            if self.op == "in":
                return actual in _as_list(self.value)
            if self.op == "not-in":
                return actual not in _as_list(self.value)
            if self.op == "array-contains":
                return isinstance(actual, list) and self.value in actual
            if self.op == "array-contains-any":
                return isinstance(actual, list) and any(v in actual for v in _as_list(self.value))
        except TypeError:
            # Range comparison between incomparable types
            return False
        return False


class OrderBy(BaseModel):
    field: str
    direction: Literal["asc", "desc"] = "asc"


class QueryResult(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False


class Page(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False
    cursor: str | None = None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def get_field(document: dict[str, Any], path: str) -> Any:
    """Resolve a dotted field path, returning the _MISSING sentinel when absent."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def apply_filters(documents: list[dict[str, Any]], filters: list[Filter] | None) -> list[dict[str, Any]]:
    if not filters:
        return list(documents)
    return [doc for doc in documents if all(f.matches(doc) for f in filters)]


def sort_documents(documents: list[dict[str, Any]], order_by: OrderBy | None) -> list[dict[str, Any]]:
    """
    Order documents by a single field, breaking ties by id.

    Without an explicit ordering documents are ordered by id, which keeps
    cursor pagination stable across calls.
    """
    if order_by is None:
        return sorted(documents, key=lambda d: str(d.get("id", "")))

    present = []
    absent = []
    for doc in documents:
        value = get_field(doc, order_by.field)
        if value is _MISSING or value is None:
            absent.append(doc)
        else:
            present.append(doc)

    reverse = order_by.direction == "desc"
    # Stable two-pass sort: id ascending as the tie-breaker, then the requested field
    present.sort(key=lambda d: str(d.get("id", "")))
    try:
        present.sort(key=lambda d: get_field(d, order_by.field), reverse=reverse)
    except TypeError:
        present.sort(key=lambda d: str(get_field(d, order_by.field)), reverse=reverse)

    # Documents without the ordering field go last
    absent.sort(key=lambda d: str(d.get("id", "")))
    return present + absent
