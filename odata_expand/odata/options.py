"""
odata_expand.odata.options - System query options
==================================================

Parses ``$filter``, ``$orderby``, ``$top``, ``$skip``, ``$select``,
``$count`` and ``$expand`` from decoded query pairs and applies them to a
SQLAlchemy ``select()`` over an entity shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.orm import selectinload

from odata_expand.odata.errors import ExpandRewriteError, ODataQueryError
from odata_expand.odata.expand import EXPAND_KEY, split_top_level
from odata_expand.odata.filters import parse_filter
from odata_expand.odata.metadata import EdmModel, EntityShape

SUPPORTED_OPTIONS = ("$filter", "$orderby", "$top", "$skip", "$select", "$count", "$expand", "$format")


@dataclass
class ExpandItem:
    """
    One navigation in an ``$expand`` tree.

    Attributes
    ----------
    name : str
        Navigation property name
    expand : list of ExpandItem
        Nested expansions from ``($expand=...)``
    select : list of str, optional
        Nested ``$select``
    """
    name: str
    expand: List["ExpandItem"] = field(default_factory=list)
    select: Optional[List[str]] = None

    def render(self) -> str:
        opts: List[str] = []
        if self.select:
            opts.append("$select=" + ",".join(self.select))
        if self.expand:
            opts.append("$expand=" + ",".join(e.render() for e in self.expand))
        return f"{self.name}({';'.join(opts)})" if opts else self.name


def _split(text: str, sep: str) -> List[str]:
    try:
        return [p.strip() for p in split_top_level(text, sep) if p.strip()]
    except ExpandRewriteError as e:
        raise ODataQueryError(str(e)) from None


def _csv(text: str) -> List[str]:
    return [p.strip() for p in text.split(",") if p.strip()]


def parse_expand(text: str) -> List[ExpandItem]:
    """
    Parse an ``$expand`` value into a tree of :class:`ExpandItem`.

    Examples
    --------
    >>> [i.render() for i in parse_expand("Attributes,Orders($expand=Attributes)")]
    ['Attributes', 'Orders($expand=Attributes)']
    """
    items: List[ExpandItem] = []
    for part in _split(text, ","):
        if "(" not in part:
            items.append(ExpandItem(part))
            continue
        if not part.endswith(")"):
            raise ODataQueryError(f"Invalid $expand item '{part}'")
        name, inner = part[:part.index("(")].strip(), part[part.index("(") + 1:-1]
        item = ExpandItem(name)
        for opt in _split(inner, ";"):
            key, sep, value = opt.partition("=")
            key = key.strip()
            if not sep:
                raise ODataQueryError(f"Invalid nested option '{opt}' in $expand")
            if key == EXPAND_KEY:
                item.expand.extend(parse_expand(value))
            elif key == "$select":
                item.select = _csv(value)
            else:
                raise ODataQueryError(f"Nested option {key} is not supported in $expand")
        items.append(item)
    return items


def _non_negative_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ODataQueryError(f"{name} must be a non-negative integer, got '{raw}'") from None
    if value < 0:
        raise ODataQueryError(f"{name} must be a non-negative integer, got '{raw}'")
    return value


@dataclass
class QueryOptions:
    """
    Parsed system query options of a collection read.

    Examples
    --------
    >>> opts = QueryOptions.from_pairs([("$top", "5"), ("$expand", "Attributes")])
    >>> opts.top, [e.name for e in opts.expand]
    (5, ['Attributes'])
    """
    filter: Optional[str] = None
    orderby: List[Tuple[str, bool]] = field(default_factory=list)
    top: Optional[int] = None
    skip: int = 0
    select: Optional[List[str]] = None
    count: bool = False
    expand: List[ExpandItem] = field(default_factory=list)

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, str]]) -> "QueryOptions":
        seen: Dict[str, str] = {}
        for key, value in pairs:
            if not key.startswith("$"):
                continue
            if key not in SUPPORTED_OPTIONS:
                raise ODataQueryError(f"Unsupported system query option {key}")
            if key in seen:
                raise ODataQueryError(f"Query option {key} given more than once")
            seen[key] = value

        opts = cls()
        if "$filter" in seen:
            opts.filter = seen["$filter"]
        if "$orderby" in seen:
            opts.orderby = _parse_orderby(seen["$orderby"])
        if "$top" in seen:
            opts.top = _non_negative_int("$top", seen["$top"])
        if "$skip" in seen:
            opts.skip = _non_negative_int("$skip", seen["$skip"])
        if "$select" in seen:
            opts.select = _csv(seen["$select"])
        if "$count" in seen:
            raw = seen["$count"].strip().lower()
            if raw not in ("true", "false"):
                raise ODataQueryError(f"$count must be true or false, got '{seen['$count']}'")
            opts.count = raw == "true"
        if "$format" in seen and seen["$format"].strip().lower() not in ("json", "application/json"):
            raise ODataQueryError(f"Unsupported $format '{seen['$format']}'")
        if EXPAND_KEY in seen:
            opts.expand = parse_expand(seen[EXPAND_KEY])
        return opts


def _parse_orderby(text: str) -> List[Tuple[str, bool]]:
    out: List[Tuple[str, bool]] = []
    for part in _csv(text):
        bits = part.split()
        if len(bits) > 2 or (len(bits) == 2 and bits[1] not in ("asc", "desc")):
            raise ODataQueryError(f"Invalid $orderby item '{part}'")
        out.append((bits[0], len(bits) == 2 and bits[1] == "desc"))
    return out


# ---------------------------------------------------------------------------
# Validation and SQL
# ---------------------------------------------------------------------------

def validate_select(shape: EntityShape, names: Optional[List[str]]) -> None:
    if not names:
        return
    unknown = [n for n in names if n != "*" and shape.find_property(n) is None]
    if unknown:
        raise ODataQueryError(
            f"Unknown properties in $select on {shape.name}: {', '.join(unknown)}"
        )


def validate_expand(model: EdmModel, shape: EntityShape, items: List[ExpandItem]) -> None:
    """
    Check every navigation in the tree exists on its entity type.

    Raises
    ------
    ODataQueryError
        On unknown navigations or unknown nested ``$select`` properties
    """
    names = [i.name for i in items]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ODataQueryError(f"Navigation expanded more than once: {', '.join(dupes)}")
    for item in items:
        nav = shape.find_navigation(item.name)
        if nav is None:
            raise ODataQueryError(
                f"Could not find a navigation property '{item.name}' on {shape.name}"
            )
        target = model.shape(nav.target)
        validate_select(target, item.select)
        validate_expand(model, target, item.expand)


def loader_options(
    model: EdmModel,
    shape: EntityShape,
    items: List[ExpandItem],
    parent: Optional[Any] = None,
) -> List[Any]:
    """Build ``selectinload`` chains for an expand tree."""
    out: List[Any] = []
    for item in items:
        nav = shape.find_navigation(item.name)
        if nav is None:
            continue
        rel = getattr(shape.model, nav.attr)
        load = parent.selectinload(rel) if parent is not None else selectinload(rel)
        out.append(load)
        out.extend(loader_options(model, model.shape(nav.target), item.expand, load))
    return out


def apply_options(
    model: EdmModel,
    shape: EntityShape,
    opts: QueryOptions,
    *,
    page_size: int,
) -> Tuple[Select, Select]:
    """
    Build the page statement and the count statement for a collection read.

    ``$top`` is capped at ``page_size``; one extra row is fetched so the
    caller can tell whether a next page exists.

    Returns
    -------
    tuple of (Select, Select)
        ``(page_stmt, count_stmt)``
    """
    validate_select(shape, opts.select)
    validate_expand(model, shape, opts.expand)

    stmt = select(shape.model)
    if opts.filter:
        stmt = stmt.where(parse_filter(shape, opts.filter))

    count_stmt = select(func.count()).select_from(stmt.subquery())

    for name, desc in opts.orderby:
        prop = shape.find_property(name)
        if prop is None:
            raise ODataQueryError(f"Unknown property '{name}' on {shape.name} in $orderby")
        column: Any = getattr(shape.model, prop.attr)
        stmt = stmt.order_by(column.desc() if desc else column.asc())
    # stable paging
    stmt = stmt.order_by(getattr(shape.model, shape.key.attr).asc())

    limit = page_size if opts.top is None else min(opts.top, page_size)
    stmt = stmt.offset(opts.skip).limit(limit + 1)
    stmt = stmt.options(*loader_options(model, shape, opts.expand))
    return stmt, count_stmt
