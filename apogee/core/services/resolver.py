"""
Activation resolver — combine local eligibility with the requires graph.

A module is active iff it is locally eligible AND every module it
requires is active. Because eligibility of a dependent says nothing
about its dependencies, this is computed over an explicit graph:

    1. build edges dependent → dependency
    2. reject cycles (DFS with grey/black colouring, full path reported)
    3. topological order, dependencies first, ties by declaration order
    4. walk the order, deciding each module from already-decided deps

The active subsequence of that order is the emission order.

Pure logic — no I/O.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Mapping

from apogee.core.errors import ConfigError, DependencyCycleError, MissingDependencyError
from apogee.core.models.activation import ActivationResult, ActivationStatus
from apogee.core.models.module import Module

logger = logging.getLogger(__name__)

_WHITE, _GREY, _BLACK = 0, 1, 2


def build_graph(modules: list[Module]) -> dict[str, list[str]]:
    """Adjacency list: module id → required ids that are declared.

    Raises:
        ConfigError: on duplicate module ids.
    """
    graph: dict[str, list[str]] = {}
    for m in modules:
        if m.id in graph:
            raise ConfigError(f"Duplicate module id: '{m.id}'")
        graph[m.id] = []
    for m in modules:
        graph[m.id] = [r for r in m.requires if r in graph]
    return graph


def find_missing(modules: list[Module]) -> list[tuple[str, str]]:
    """(dependent, requirement) pairs whose requirement is not declared."""
    known = {m.id for m in modules}
    return [(m.id, r) for m in modules for r in m.requires if r not in known]


def find_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Return the first cycle found as a closed path, or None.

    Nodes and edges are visited in declaration order, so the reported
    cycle is stable across runs.
    """
    color = {node: _WHITE for node in graph}
    stack: list[str] = []

    for root in graph:
        if color[root] != _WHITE:
            continue
        # Iterative DFS: (node, iterator over its dependencies)
        color[root] = _GREY
        stack.append(root)
        frames = [(root, iter(graph[root]))]
        while frames:
            node, deps = frames[-1]
            advanced = False
            for dep in deps:
                if color[dep] == _GREY:
                    start = stack.index(dep)
                    return stack[start:] + [dep]
                if color[dep] == _WHITE:
                    color[dep] = _GREY
                    stack.append(dep)
                    frames.append((dep, iter(graph[dep])))
                    advanced = True
                    break
            if not advanced:
                color[node] = _BLACK
                stack.pop()
                frames.pop()
    return None


def topological_order(modules: list[Module], graph: dict[str, list[str]]) -> list[str]:
    """Dependencies before dependents; ties broken by declaration order.

    The graph must be acyclic (call find_cycle first).
    """
    index = {m.id: i for i, m in enumerate(modules)}
    remaining = {node: len(deps) for node, deps in graph.items()}
    dependents: dict[str, list[str]] = {node: [] for node in graph}
    for node, deps in graph.items():
        for dep in deps:
            dependents[dep].append(node)

    ready = [(index[n], n) for n, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for child in dependents[node]:
            remaining[child] -= 1
            if remaining[child] == 0:
                heapq.heappush(ready, (index[child], child))

    if len(order) != len(graph):
        # Unreachable for a validated acyclic graph.
        raise DependencyCycleError(sorted(set(graph) - set(order)))
    return order


def resolve(
    modules: list[Module],
    local_eligibility: Mapping[str, bool],
    strict: bool = True,
) -> ActivationResult:
    """Compute the active set and emission order.

    Args:
        modules: Modules in declaration order.
        local_eligibility: Detection result per module id. A module
            missing from the map counts as not eligible.
        strict: Raise on requirements naming undeclared modules. When
            False the dependent is marked inactive instead (diagnostics).

    Raises:
        DependencyCycleError: the requires graph has a cycle.
        MissingDependencyError: strict and a requirement is undeclared.
        ConfigError: duplicate module ids.
    """
    graph = build_graph(modules)

    missing = find_missing(modules)
    if missing and strict:
        raise MissingDependencyError(missing)

    cycle = find_cycle(graph)
    if cycle is not None:
        raise DependencyCycleError(cycle)

    order = topological_order(modules, graph)
    by_id = {m.id: m for m in modules}
    result = ActivationResult()

    for mid in order:
        module = by_id[mid]
        eligible = bool(local_eligibility.get(mid, False))
        status = ActivationStatus(eligible=eligible)

        if not eligible:
            status.reason = "not locally eligible"
        else:
            status.active = True
            status.reason = "active"
            for req in module.requires:
                if req not in by_id:
                    status.active = False
                    status.reason = f"requires unknown module '{req}'"
                    break
                if not result.statuses[req].active:
                    status.active = False
                    status.reason = f"requires '{req}' which is inactive"
                    break

        result.statuses[mid] = status
        if status.active:
            result.order.append(mid)

    # Report statuses in declaration order, not topological order.
    result.statuses = {m.id: result.statuses[m.id] for m in modules}

    logger.info("Activation: %d/%d modules active: %s",
                len(result.order), len(modules), ", ".join(result.order) or "-")
    for mid, status in result.statuses.items():
        if status.eligible and not status.active:
            logger.info("Module '%s' eligible but inactive: %s", mid, status.reason)
    return result
