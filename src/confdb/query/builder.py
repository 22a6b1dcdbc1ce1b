"""Translate model operations into path expressions.

The builder is pure: it only computes path strings from the data model and
its arguments, it never touches the document.
"""
from typing import TYPE_CHECKING, Any, Iterable, Union

from .path import quote_literal

if TYPE_CHECKING:
    from ..datamodel import DataModel


def candidate_values(value: Any) -> list[Any]:
    """Normalize a scalar or a collection of candidate values to a list."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _any_equals(prop: str, values: Iterable[Any]) -> str:
    return " or ".join(f"{prop}={quote_literal(v)}" for v in values)


class QueryBuilder:
    """Builds path expressions for one data model.

    Usage:
        qb = QueryBuilder(registry.get_model("network.interface"))
        qb.build_get_query()        # all interfaces
        qb.build_get_query("u1")    # the interface with uuid 'u1'
    """

    def __init__(self, model: "DataModel"):
        self.model = model

    @property
    def element_name(self) -> str:
        """Name of the node inserted for a new collection object."""
        return self.model.element_name

    def _by_identifier(self, identifier: Any) -> str:
        return f"{self.model.xpath}[{self.model.idproperty}={quote_literal(identifier)}]"

    def _object_path(self, obj) -> str:
        if self.model.is_iterable():
            return self._by_identifier(obj.get_identifier())
        return self.model.xpath

    def build_get_query(self, *args: Any) -> str:
        """Path for reading.

        A collection model without arguments matches all sibling nodes; with an
        identifier it matches exactly that node.
        """
        if self.model.is_iterable() and args:
            return self._by_identifier(args[0])
        return self.model.xpath

    def build_set_query(self, obj) -> str:
        """Path for writing `obj`.

        New collection objects are inserted below the parent node; everything
        else is replaced in place.
        """
        if self.model.is_iterable() and obj.is_new():
            return self.model.parent_xpath
        return self._object_path(obj)

    def build_delete_query(self, obj) -> str:
        """Path matching exactly the node of `obj`."""
        return self._object_path(obj)

    def build_exists_query(self, prop: str, value: Union[Any, Iterable[Any]]) -> str:
        """Path matching nodes whose `prop` equals any of the candidate values.

        Raises:
            ValueError: If no candidate value is given
        """
        values = candidate_values(value)
        if not values:
            raise ValueError("At least one candidate value is required")
        return f"{self.model.xpath}[{_any_equals(prop, values)}]"

    def build_filter_query(self, prop: str, value: Union[Any, Iterable[Any]]) -> str:
        """Path selecting the objects whose `prop` matches any candidate."""
        return self.build_exists_query(prop, value)

    def build_is_unique_query(self, obj, prop: str) -> str:
        """Path matching OTHER nodes sharing `obj`'s value of `prop`."""
        condition = f"{prop}={quote_literal(obj.get(prop))}"
        if self.model.is_iterable():
            identifier = quote_literal(obj.get_identifier())
            condition = f"({condition}) and {self.model.idproperty}!={identifier}"
        return f"{self.model.xpath}[{condition}]"

    def build_is_referenced_query(self, obj) -> str:
        """Path matching any node referencing `obj` by its identifier."""
        identifier = quote_literal(obj.get_identifier())
        return f"//*[{self.model.refproperty}={identifier}]"
