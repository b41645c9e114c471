"""
graph/layout.py

Top-to-bottom layered auto-layout for a dialog scene.

Phases:
  1. Cycle removal (edges pointing backwards in a DFS order are reversed)
  2. Layer assignment (longest path from the roots)
  3. Crossing reduction (barycenter sweeps)
  4. Coordinate assignment (layers centered on the widest one)

The result is a ``{card_id: Position}`` map; nothing here touches the
model.  Apply it with ``GraphService.move_cards``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

import networkx as nx

from models import CARD_HEIGHT, CARD_WIDTH, Card, Edge, Position

log = logging.getLogger(__name__)

# Horizontal gap between cards in a layer, vertical gap between layers
NODE_SEP = 50.0
RANK_SEP = 100.0

MAX_SWEEPS = 8


def build_digraph(cards: Sequence[Card], edges: Sequence[Edge]) -> nx.DiGraph:
    """DiGraph over card ids.  Self-loops and edges to missing cards are dropped."""
    graph = nx.DiGraph()
    graph.add_nodes_from(sorted(c.id for c in cards))
    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.source in graph and edge.target in graph:
            graph.add_edge(edge.source, edge.target)
    return graph


def remove_cycles(graph: nx.DiGraph) -> nx.DiGraph:
    """Return an acyclic copy of *graph* with back-edges reversed.

    Nodes are ordered by a depth-first walk that starts from the roots
    (in-degree zero, lowest id first).  Every edge running against that
    order is flipped, which cannot leave a cycle behind.
    """
    roots = sorted(n for n in graph.nodes if graph.in_degree(n) == 0)
    order: List[int] = []
    seen = set()
    for start in roots + sorted(graph.nodes):
        if start in seen:
            continue
        for node in nx.dfs_preorder_nodes(graph, start):
            if node not in seen:
                seen.add(node)
                order.append(node)
    rank = {node: i for i, node in enumerate(order)}

    dag = nx.DiGraph()
    dag.add_nodes_from(graph.nodes)
    for src, tgt in graph.edges:
        if rank[src] > rank[tgt]:
            dag.add_edge(tgt, src)
        else:
            dag.add_edge(src, tgt)
    return dag


def assign_layers(dag: nx.DiGraph) -> Dict[int, int]:
    """Longest-path layering: every edge goes at least one layer down."""
    layers: Dict[int, int] = {}
    for node in nx.topological_sort(dag):
        preds = [layers[p] + 1 for p in dag.predecessors(node)]
        layers[node] = max(preds, default=0)
    return layers


def _barycenter(node: int, neighbors, positions: Dict[int, float]) -> float:
    found = [positions[n] for n in neighbors if n in positions]
    if not found:
        return float("inf")
    return sum(found) / len(found)


def order_layers(dag: nx.DiGraph, layers: Dict[int, int]) -> List[List[int]]:
    """Order nodes inside each layer to reduce crossings.

    Starts from id order and runs alternating down/up barycenter sweeps.
    Nodes without neighbours in the adjacent layer keep their place at the
    end (the sort is stable).
    """
    count = max(layers.values(), default=-1) + 1
    ordering: List[List[int]] = [[] for _ in range(count)]
    for node in sorted(layers):
        ordering[layers[node]].append(node)

    for _ in range(MAX_SWEEPS):
        before = [list(layer) for layer in ordering]
        for idx in range(1, count):
            prev = {n: float(i) for i, n in enumerate(ordering[idx - 1])}
            ordering[idx].sort(key=lambda n, p=prev: _barycenter(n, dag.predecessors(n), p))
        for idx in range(count - 2, -1, -1):
            nxt = {n: float(i) for i, n in enumerate(ordering[idx + 1])}
            ordering[idx].sort(key=lambda n, p=nxt: _barycenter(n, dag.successors(n), p))
        if ordering == before:
            break
    return ordering


def layered_layout(cards: Sequence[Card], edges: Sequence[Edge],
                   card_width: float = CARD_WIDTH, card_height: float = CARD_HEIGHT,
                   node_sep: float = NODE_SEP, rank_sep: float = RANK_SEP) -> Dict[int, Position]:
    """Compute top-left positions for every card.

    Layer 0 sits at ``y = 0``; each layer is centered horizontally on the
    widest one, whose left edge is at ``x = 0``.
    """
    if not cards:
        return {}
    dag = remove_cycles(build_digraph(cards, edges))
    ordering = order_layers(dag, assign_layers(dag))

    def layer_width(layer: List[int]) -> float:
        return len(layer) * card_width + (len(layer) - 1) * node_sep

    widest = max(layer_width(layer) for layer in ordering)
    positions: Dict[int, Position] = {}
    for depth, layer in enumerate(ordering):
        x0 = (widest - layer_width(layer)) / 2
        y = depth * (card_height + rank_sep)
        for i, card_id in enumerate(layer):
            positions[card_id] = Position(x0 + i * (card_width + node_sep), y)

    log.debug("Layered layout: %d cards in %d layers", len(positions), len(ordering))
    return positions
