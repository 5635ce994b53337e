"""
Cluster property aggregation.

A reducer pairs two operations used while clusters are built:

- ``map(properties)`` projects an input point's properties into the shape
  that will be aggregated (for example ``{"population": 120}`` ->
  ``{"sum": 120}``).
- ``reduce(accumulated, properties)`` folds one mapped property dict into
  the cluster's accumulator in place.

Reducers can be written as plain callables passed to
:class:`~geocluster.clustering.config.ClusterOptions`, or as
:class:`PropertyReducer` objects. ``build_reducer`` creates the latter from
the ``reducer:`` section of a YAML profile.
"""

from __future__ import annotations

import operator
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional


Properties = Dict[str, Any]


class PropertyReducer:
    """Base class for an explicit ``map``/``reduce`` accumulator."""

    def map(self, properties: Mapping[str, Any]) -> Properties:
        return dict(properties)

    def reduce(self, accumulated: Properties, properties: Mapping[str, Any]) -> None:
        raise NotImplementedError


FIELD_OPERATIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "sum": operator.add,
    "min": min,
    "max": max,
    "count": operator.add,
}


class FieldReducer(PropertyReducer):
    """
    Aggregate a set of numeric fields with a single operation.

    The aggregated value for field ``population`` under ``sum`` is stored as
    ``population_sum`` unless ``output_names`` says otherwise. ``count``
    counts points carrying a non-null value for the field.
    """

    def __init__(
        self,
        operation: str,
        fields: Iterable[str],
        output_names: Optional[Mapping[str, str]] = None,
    ):
        if operation not in FIELD_OPERATIONS:
            raise ValueError(
                f"Unknown reducer operation '{operation}'. "
                f"Available: {', '.join(sorted(FIELD_OPERATIONS))}"
            )
        self.operation = operation
        self.fields = list(fields)
        output_names = dict(output_names or {})
        self.output_names = {
            name: output_names.get(name, f"{name}_{operation}") for name in self.fields
        }
        self._combine = FIELD_OPERATIONS[operation]

    def map(self, properties: Mapping[str, Any]) -> Properties:
        mapped: Properties = {}
        for name in self.fields:
            value = properties.get(name)
            if self.operation == "count":
                value = 0 if value is None else 1
            mapped[self.output_names[name]] = value
        return mapped

    def reduce(self, accumulated: Properties, properties: Mapping[str, Any]) -> None:
        for key in self.output_names.values():
            incoming = properties.get(key)
            if incoming is None:
                continue
            current = accumulated.get(key)
            accumulated[key] = incoming if current is None else self._combine(current, incoming)


class CompositeReducer(PropertyReducer):
    """Run several reducers side by side over disjoint output keys."""

    def __init__(self, reducers: List[PropertyReducer]):
        self.reducers = list(reducers)

    def map(self, properties: Mapping[str, Any]) -> Properties:
        mapped: Properties = {}
        for reducer in self.reducers:
            mapped.update(reducer.map(properties))
        return mapped

    def reduce(self, accumulated: Properties, properties: Mapping[str, Any]) -> None:
        for reducer in self.reducers:
            reducer.reduce(accumulated, properties)


def build_reducer(config: Optional[Mapping[str, Any]]) -> Optional[PropertyReducer]:
    """
    Build a reducer from a profile mapping.

    Args:
        config: Mapping of operation -> list of field names, e.g.
              ``{"sum": ["population"], "max": ["rating"]}``. A mapping of
              field -> output name is accepted in place of the list.

    Returns:
        A reducer, or None if ``config`` is empty

    Raises:
        ValueError: If an operation is unknown
    """
    if not config:
        return None

    reducers: List[PropertyReducer] = []
    for operation, fields in config.items():
        if isinstance(fields, Mapping):
            reducers.append(FieldReducer(operation, fields.keys(), output_names=fields))
        elif isinstance(fields, str):
            reducers.append(FieldReducer(operation, [fields]))
        else:
            reducers.append(FieldReducer(operation, fields))

    if len(reducers) == 1:
        return reducers[0]
    return CompositeReducer(reducers)


__all__ = [
    "CompositeReducer",
    "FIELD_OPERATIONS",
    "FieldReducer",
    "PropertyReducer",
    "build_reducer",
]
