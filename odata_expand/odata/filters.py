"""
odata_expand.odata.filters - $filter translation
=================================================

Parses the ``$filter`` subset the service supports with a pyparsing
grammar and translates it into SQLAlchemy boolean expressions:

- comparisons ``eq ne gt ge lt le``
- logical ``and or not`` and parentheses
- ``contains``, ``startswith``, ``endswith`` on string properties
- literals: integers, decimals, ``'strings'`` (``''`` escapes a quote),
  ``true``, ``false``, ``null``
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple

import pyparsing as pp
from sqlalchemy import and_, literal, not_, or_
from sqlalchemy.sql.elements import ColumnElement

from odata_expand.odata.errors import ODataQueryError
from odata_expand.odata.metadata import EntityShape, StructuralProperty

_COMPARISONS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "ge": operator.ge,
    "lt": operator.lt,
    "le": operator.le,
}

_FUNCTIONS = ("contains", "startswith", "endswith")

_NULL = object()


# ---------------------------------------------------------------------------
# Syntax tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class PropertyRef:
    name: str


@dataclass(frozen=True)
class Call:
    name: str
    target: PropertyRef
    argument: Any


@dataclass(frozen=True)
class Comparison:
    left: Any
    op: str
    right: Any


@dataclass(frozen=True)
class Not:
    operand: Any


@dataclass(frozen=True)
class BoolOp:
    op: str
    operands: Tuple[Any, ...]


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

def _number(t: pp.ParseResults) -> Literal:
    text = t[0]
    return Literal(Decimal(text) if "." in text else int(text))


def _keyword_literal(t: pp.ParseResults) -> Literal:
    return Literal({"true": True, "false": False, "null": _NULL}[t[0]])


def _bool_op(t: pp.ParseResults) -> BoolOp:
    group = t[0]
    return BoolOp(group[1], tuple(group[0::2]))


def _build_grammar() -> pp.ParserElement:
    lpar, rpar, comma = map(pp.Suppress, "(),")
    reserved = pp.one_of(
        ["and", "or", "not", "true", "false", "null", *_COMPARISONS],
        as_keyword=True,
    )

    string = pp.QuotedString("'", esc_quote="''").set_parse_action(lambda t: Literal(t[0]))
    number = pp.Regex(r"-?\d+(?:\.\d+)?").set_parse_action(_number)
    keyword = pp.one_of("true false null", as_keyword=True).set_parse_action(_keyword_literal)
    identifier = (~reserved + pp.Regex(r"[A-Za-z_][A-Za-z0-9_]*")).set_parse_action(
        lambda t: PropertyRef(t[0])
    )

    operand = string | number | keyword | identifier
    call = pp.Group(
        pp.one_of(list(_FUNCTIONS), as_keyword=True) + lpar + identifier + comma + operand + rpar
    ).set_parse_action(lambda t: Call(*t[0]))
    comparison = (
        operand + pp.one_of(list(_COMPARISONS), as_keyword=True) + operand
    ).set_parse_action(lambda t: Comparison(*t))

    return pp.infix_notation(call | comparison, [
        (pp.Keyword("not"), 1, pp.OpAssoc.RIGHT, lambda t: Not(t[0][1])),
        (pp.Keyword("and"), 2, pp.OpAssoc.LEFT, _bool_op),
        (pp.Keyword("or"), 2, pp.OpAssoc.LEFT, _bool_op),
    ])


FILTER_GRAMMAR = _build_grammar()


def escape_odata_literal(value: str) -> str:
    """
    Escape a string value for use in OData $filter expressions.

    Examples
    --------
    >>> escape_odata_literal("O'Brien")
    "O''Brien"
    """
    return value.replace("'", "''")


def parse_filter_tree(text: str) -> Any:
    """
    Parse a ``$filter`` expression into its syntax tree.

    Raises
    ------
    ODataQueryError
        If the expression is empty or not valid
    """
    if not text or not text.strip():
        raise ODataQueryError("$filter must not be empty")
    try:
        return FILTER_GRAMMAR.parse_string(text, parse_all=True)[0]
    except pp.ParseBaseException as e:
        raise ODataQueryError(
            f"Invalid $filter syntax at position {e.loc}: '{text[e.loc:]}'"
        ) from None


class FilterParser:
    """
    Translate ``$filter`` expressions against an entity shape.

    Parameters
    ----------
    shape : EntityShape
        Entity type whose structural properties may be referenced

    Examples
    --------
    >>> clause = FilterParser(PERSON_SHAPE).parse("Age gt 10 and startswith(Name,'A')")
    >>> stmt = select(Person).where(clause)
    """

    def __init__(self, shape: EntityShape) -> None:
        self.shape = shape

    def parse(self, text: str) -> ColumnElement:
        return self._clause(parse_filter_tree(text))

    def _clause(self, node: Any) -> ColumnElement:
        if isinstance(node, BoolOp):
            parts: List[ColumnElement] = [self._clause(n) for n in node.operands]
            return and_(*parts) if node.op == "and" else or_(*parts)
        if isinstance(node, Not):
            return not_(self._clause(node.operand))
        if isinstance(node, Call):
            return self._function(node)
        return self._comparison(node)

    def _function(self, node: Call) -> ColumnElement:
        prop, column = self._property(node.target)
        if prop.edm_type != "Edm.String":
            raise ODataQueryError(
                f"{node.name}() expects a string property, '{prop.name}' is {prop.edm_type}"
            )
        value = node.argument.value if isinstance(node.argument, Literal) else None
        if not isinstance(value, str):
            raise ODataQueryError(f"{node.name}() expects a string literal")
        if node.name == "contains":
            return column.contains(value, autoescape=True)
        if node.name == "startswith":
            return column.startswith(value, autoescape=True)
        return column.endswith(value, autoescape=True)

    def _comparison(self, node: Comparison) -> ColumnElement:
        left, right = self._operand(node.left), self._operand(node.right)

        if left is _NULL or right is _NULL:
            other = right if left is _NULL else left
            if other is _NULL:
                return literal(node.op in ("eq", "ge", "le"))
            if node.op == "eq":
                return self._as_sql(other).is_(None)
            if node.op == "ne":
                return self._as_sql(other).is_not(None)
            raise ODataQueryError(f"Operator '{node.op}' cannot compare with null")
        return _COMPARISONS[node.op](self._as_sql(left), self._as_sql(right))

    def _operand(self, node: Any) -> Any:
        if isinstance(node, PropertyRef):
            return self._property(node)[1]
        return node.value

    def _property(self, ref: PropertyRef) -> Tuple[StructuralProperty, ColumnElement]:
        prop = self.shape.find_property(ref.name)
        if prop is None:
            raise ODataQueryError(
                f"Unknown property '{ref.name}' on {self.shape.name} in $filter"
            )
        return prop, getattr(self.shape.model, prop.attr)

    @staticmethod
    def _as_sql(value: Any) -> ColumnElement:
        if isinstance(value, ColumnElement) or hasattr(value, "__clause_element__"):
            return value
        return literal(value)


def parse_filter(shape: EntityShape, text: str) -> ColumnElement:
    """Translate a ``$filter`` expression into a SQLAlchemy clause."""
    return FilterParser(shape).parse(text)
