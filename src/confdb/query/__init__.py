"""Path expressions and the query builder that derives them from data models."""
from .path import (
    PathExpression,
    PathParser,
    PathSyntaxError,
    Node,
    parse_path,
    select,
    quote_literal,
    to_text,
)
from .builder import QueryBuilder, candidate_values

__all__ = [
    "PathExpression",
    "PathParser",
    "PathSyntaxError",
    "Node",
    "parse_path",
    "select",
    "quote_literal",
    "to_text",
    "QueryBuilder",
    "candidate_values",
]
