"""Dependency graph between derived fields and their parents.

Builds a ``derived field -> parents`` graph from a form schema, orders the
derived fields so every field comes after the derived fields it reads, and
refuses cycles.

Usage:
    from form_engine.graph.dependencies import build_graph
    from form_engine.errors import CycleError

    try:
        graph = build_graph(schema)
    except CycleError as e:
        print(f"Unusable fields: {e.field_ids}")
        graph = e.graph  # the acyclic remainder

    for field_id in graph.downstream("dob"):
        ...
"""

import heapq
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field

from form_engine.errors import CycleError
from form_engine.fields.models import FormSchema

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """Derived fields, their parents, and a topological order.

    Attributes:
        parents: Derived field id -> parent ids, as declared.
        order: Derived field ids, parents before children, ties broken by
            schema field order.
    """

    parents: dict[str, list[str]] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def __contains__(self, field_id: str) -> bool:
        return field_id in self.parents

    def children(self, field_id: str) -> list[str]:
        """Derived fields that list *field_id* as a parent, in graph order."""
        return [d for d in self.order if field_id in self.parents[d]]

    def downstream(self, field_id: str) -> list[str]:
        """Derived fields reachable from *field_id*, in graph order.

        The field itself is not included.
        """
        reached: set[str] = set()
        queue = deque([field_id])
        while queue:
            current = queue.popleft()
            for child in self.children(current):
                if child not in reached:
                    reached.add(child)
                    queue.append(child)
        reached.discard(field_id)
        return [d for d in self.order if d in reached]


def _cycle_members(deps: dict[str, list[str]], nodes: list[str]) -> set[str]:
    """Nodes lying on at least one cycle (Tarjan's strongly connected components)."""
    counter = itertools.count()
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    members: set[str] = set()

    def visit(root: str) -> None:
        # Iterative DFS; each frame is (node, iterator over its deps)
        index[root] = low[root] = next(counter)
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(deps.get(root, [])))]

        while work:
            node, pending = work[-1]
            for dep in pending:
                if dep not in index:
                    index[dep] = low[dep] = next(counter)
                    stack.append(dep)
                    on_stack.add(dep)
                    work.append((dep, iter(deps.get(dep, []))))
                    break
                if dep in on_stack:
                    low[node] = min(low[node], index[dep])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    low[parent] = min(low[parent], low[node])

                if low[node] == index[node]:
                    component: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in deps.get(node, []):
                        members.update(component)

    for node in nodes:
        if node not in index:
            visit(node)

    return members


def _topological_order(
    deps: dict[str, list[str]],
    nodes: list[str],
    position: dict[str, int],
) -> list[str]:
    """Kahn's algorithm over *nodes*; ready nodes are taken in schema order."""
    node_set = set(nodes)
    remaining = {n: len([d for d in deps[n] if d in node_set]) for n in nodes}
    dependents: dict[str, list[str]] = {n: [] for n in nodes}
    for node in nodes:
        for dep in deps[node]:
            if dep in node_set:
                dependents[dep].append(node)

    ready = [(position[n], n) for n in nodes if remaining[n] == 0]
    heapq.heapify(ready)
    ordered: list[str] = []

    while ready:
        _, node = heapq.heappop(ready)
        ordered.append(node)
        for dependent in dependents[node]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (position[dependent], dependent))

    return ordered


def build_graph(schema: FormSchema) -> DependencyGraph:
    """Build the dependency graph of *schema*'s derived fields.

    Only derived-to-derived edges constrain the order; input parents are
    leaves.  Parents that do not exist in the schema are kept in
    ``parents`` but otherwise ignored (``check_schema`` reports them).

    Args:
        schema: Form schema to analyse.

    Returns:
        ``DependencyGraph`` whose ``order`` places every derived field after
        all of its derived parents, ties broken by schema field order.

    Raises:
        CycleError: If any derived fields depend on each other in a cycle.
            ``field_ids`` names every field on a cycle (self-references
            included); ``graph`` covers the derived fields that can still be
            computed.

    Example:
        >>> schema = FormSchema(name="f", fields=[
        ...     Field(id="dob", type="date"),
        ...     Field(id="age", derived=DerivedSpec(parents=["dob"], formula="1")),
        ... ])
        >>> build_graph(schema).order
        ['age']
    """
    position: dict[str, int] = {}
    for i, field_id in enumerate(schema.field_ids()):
        position.setdefault(field_id, i)

    declared = {f.id: list(f.derived.parents) for f in schema.derived_fields()}
    nodes = sorted(declared, key=position.__getitem__)
    deps = {n: [p for p in declared[n] if p in declared] for n in nodes}

    cyclic = _cycle_members(deps, nodes)
    if not cyclic:
        order = _topological_order(deps, nodes, position)
        logger.debug("Dependency order for %s: %s", schema.name, order)
        return DependencyGraph(parents=declared, order=order)

    # Everything reading from a cycle, directly or not, is unusable too
    blocked = set(cyclic)
    changed = True
    while changed:
        changed = False
        for node in nodes:
            if node not in blocked and any(d in blocked for d in deps[node]):
                blocked.add(node)
                changed = True

    healthy = [n for n in nodes if n not in blocked]
    graph = DependencyGraph(
        parents={n: declared[n] for n in healthy},
        order=_topological_order(deps, healthy, position),
    )
    field_ids = sorted(cyclic, key=position.__getitem__)
    logger.warning("Dependency cycle in form %s: %s", schema.name, field_ids)
    raise CycleError(field_ids, graph)
