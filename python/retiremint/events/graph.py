"""Dependency graph over event series start-year references.

An event whose start is ``SameYearAs(B)`` or ``YearAfterEnd(B)`` cannot be
resolved before ``B``. The graph has one node per event name and an edge
``B -> A`` for each such reference, so a topological order lists every
event after the event it starts relative to.

"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

import networkx as nx

from retiremint.errors import (
    CyclicDependencyError,
    DuplicateNameError,
    UnresolvedReferenceError,
)
from retiremint.model import EventSeries


def check_unique_names(events: Sequence[EventSeries]) -> None:
    """Raise DuplicateNameError if two events share a name."""
    counts = Counter(event.name for event in events)
    duplicates = [name for name, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateNameError(duplicates)


def build_dependency_graph(events: Sequence[EventSeries]) -> nx.DiGraph:
    """Build the start-reference graph.

    Each node stores its declaration ``position`` so orderings can be made
    deterministic.

    Args:
        events: Event series in declaration order.

    Returns:
        Directed graph with an edge from each referenced event to the
        event that references it.

    Raises:
        DuplicateNameError: If two events share a name.
        UnresolvedReferenceError: If an event references an unknown name.

    """
    check_unique_names(events)

    graph = nx.DiGraph()
    for position, event in enumerate(events):
        graph.add_node(event.name, position=position)

    for event in events:
        reference = event.reference
        if reference is None:
            continue
        if reference not in graph:
            raise UnresolvedReferenceError(event.name, reference)
        graph.add_edge(reference, event.name)

    return graph


def topological_order(events: Sequence[EventSeries]) -> list[str]:
    """Order event names so every event follows the one it references.

    Ties are broken by declaration order, so the result depends only on
    the scenario definition.

    Args:
        events: Event series in declaration order.

    Returns:
        Event names in evaluation order.

    Raises:
        CyclicDependencyError: If references form a cycle (including an
            event referencing itself); names exactly the events on it.
        DuplicateNameError: If two events share a name.
        UnresolvedReferenceError: If an event references an unknown name.

    """
    graph = build_dependency_graph(events)

    try:
        cycle_edges = nx.find_cycle(graph)
    except nx.NetworkXNoCycle:
        pass
    else:
        # Edges point from referenced to referencing event; report the
        # cycle in the direction the references were written.
        raise CyclicDependencyError([source for source, _target in reversed(cycle_edges)])

    position = nx.get_node_attributes(graph, "position")
    return list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
