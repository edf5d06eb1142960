"""Relationship graph and affinity clusters.

Every declared relationship and every pair inside an explicit constraint
becomes an edge of an undirected :class:`networkx.Graph` keyed by the
unordered guest pair. A declaration on either side is enough. When both
classes are declared for one pair the repulsion classification wins; within
a class the stronger declaration wins.

Edge attributes:
    kind:     ``"affinity"`` or ``"repulsion"``
    strength: non negative int
    relation: the winning relationship or constraint type
    weight:   ``+strength`` for affinity, ``-strength`` for repulsion
    close:    an affinity pair declared as partner or family

Node attributes:
    order:     position among confirmed guests
    group:     optional group label
    interests: lower cased interests
    industry:  optional industry label
"""
from __future__ import annotations

import logging
from collections import deque
from itertools import combinations
from typing import Dict, Iterable, List, Optional

import networkx as nx

from .config import DEFAULT_CONFIG, OptimizerConfig
from .models import Constraint, Guest, normalize_type

logger = logging.getLogger(__name__)

AFFINITY = "affinity"
REPULSION = "repulsion"


def _as_strength(value: object, default: int) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return default


def _label(value: object) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _merge_edge(
    graph: nx.Graph, a: str, b: str, kind: str, strength: int, relation: str, close: bool = False
) -> None:
    if a == b or a not in graph or b not in graph:
        return
    if graph.has_edge(a, b):
        data = graph[a][b]
        close = close or data["close"]
        if data["kind"] == REPULSION and kind == AFFINITY:
            return
        if data["kind"] == kind and data["strength"] >= strength:
            data["close"] = close and kind == AFFINITY
            return
    weight = strength if kind == AFFINITY else -strength
    graph.add_edge(
        a, b, kind=kind, strength=strength, relation=relation, weight=weight, close=close and kind == AFFINITY
    )


def build_relationship_graph(
    guests: Iterable[Guest],
    constraints: Optional[Iterable[Constraint]] = None,
    config: OptimizerConfig = DEFAULT_CONFIG,
) -> nx.Graph:
    """Graph over confirmed guests only.

    Links to declined, pending or unknown guests are dropped.
    """
    graph = nx.Graph()
    confirmed: List[Guest] = []
    for guest in guests or []:
        if not guest.is_confirmed:
            continue
        if guest.id in graph:
            logger.warning("Duplicate guest id %s ignored", guest.id)
            continue
        graph.add_node(
            guest.id,
            order=len(confirmed),
            group=_label(guest.group),
            interests=frozenset(str(i).strip().lower() for i in guest.interests or [] if str(i).strip()),
            industry=_label(guest.industry),
        )
        confirmed.append(guest)

    for guest in confirmed:
        for rel in guest.relationships or []:
            relation = normalize_type(rel.type)
            kind = config.classify(relation)
            if kind is None:
                continue
            if rel.guest_id not in graph:
                logger.debug("Relationship %s -> %s skipped, target not seatable", guest.id, rel.guest_id)
                continue
            strength = _as_strength(rel.strength, config.default_strength)
            _merge_edge(graph, guest.id, rel.guest_id, kind, strength, relation, relation in config.close_types)

    for constraint in constraints or []:
        relation = normalize_type(constraint.type)
        kind = config.classify(relation)
        if kind is None:
            continue
        strength = config.strength_for_priority(normalize_type(constraint.priority))
        for a, b in combinations(constraint.guest_ids or [], 2):
            _merge_edge(graph, a, b, kind, strength, relation)

    return graph


def pair_value(graph: nx.Graph, a: str, b: str) -> int:
    """Signed weight for a pair. Zero when unrelated or unknown."""
    if graph.has_edge(a, b):
        return graph[a][b]["weight"]
    return 0


def is_repulsion(graph: nx.Graph, a: str, b: str) -> bool:
    return graph.has_edge(a, b) and graph[a][b]["kind"] == REPULSION


def is_close(graph: nx.Graph, a: str, b: str) -> bool:
    return graph.has_edge(a, b) and graph[a][b]["close"]


def close_blocks(graph: nx.Graph, members: Iterable[str]) -> List[List[str]]:
    """Guests chained by partner or family links, each block in guest order."""
    member_set = set(members)
    close = nx.Graph()
    close.add_nodes_from(member_set)
    close.add_edges_from(
        (a, b) for a, b, d in graph.edges(data=True)
        if d["close"] and a in member_set and b in member_set
    )

    def order(n: str) -> int:
        return graph.nodes[n].get("order", 0)

    blocks = [sorted(c, key=order) for c in nx.connected_components(close)]
    return sorted(blocks, key=lambda b: order(b[0]))


# ----------------------------- clusters -----------------------------
def build_clusters(graph: nx.Graph, members: Optional[Iterable[str]] = None) -> List[List[str]]:
    """Union guests chained by affinity edges, strongest edges first.

    Guests sharing a group label are linked after every declared affinity.
    A merge that would bring a repulsion pair into one cluster is skipped so
    every cluster can be seated at a single table.
    """
    nodes = list(members) if members is not None else list(graph.nodes)
    node_set = set(nodes)
    parent: Dict[str, str] = {n: n for n in nodes}
    cluster_of: Dict[str, set] = {n: {n} for n in nodes}

    def find(x: str) -> str:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    def order(n: str) -> int:
        return graph.nodes[n].get("order", 0)

    edges = [
        (a, b, data["strength"])
        for a, b, data in graph.edges(data=True)
        if data["kind"] == AFFINITY and a in node_set and b in node_set
    ]
    edges.sort(key=lambda e: (-e[2], min(order(e[0]), order(e[1])), max(order(e[0]), order(e[1]))))

    groups: Dict[str, List[str]] = {}
    for n in sorted(nodes, key=order):
        group = graph.nodes[n].get("group")
        if group:
            groups.setdefault(group, []).append(n)
    for group_members in groups.values():
        edges.extend((a, b, -1) for a, b in zip(group_members, group_members[1:]))

    for a, b, _ in edges:
        pa, pb = find(a), find(b)
        if pa == pb:
            continue
        left, right = cluster_of[pa], cluster_of[pb]
        if any(is_repulsion(graph, x, y) for x in left for y in right):
            logger.debug("Affinity %s-%s not merged, clusters hold a repulsion pair", a, b)
            continue
        parent[pa] = pb
        cluster_of[pb] = left | right
        del cluster_of[pa]

    clusters = [sorted(members, key=order) for members in cluster_of.values()]
    return sorted(clusters, key=lambda c: (-len(c), order(c[0])))


def split_cluster(graph: nx.Graph, members: List[str], max_size: int) -> List[List[str]]:
    """Cut an oversized cluster into chunks of at most ``max_size``.

    Members are taken breadth first from the most strongly connected guest so
    closely linked guests land in the same chunk. Partner and family blocks
    move as a whole and are only cut when a block alone exceeds ``max_size``.
    """
    if max_size <= 0:
        return []
    if len(members) <= max_size:
        return [list(members)]

    member_set = set(members)
    sub = graph.subgraph(members)

    def affinity_degree(n: str) -> int:
        return sum(d["strength"] for _, _, d in sub.edges(n, data=True) if d["kind"] == AFFINITY)

    ordered: List[str] = []
    seen = set()
    for start in sorted(members, key=lambda n: (-affinity_degree(n), graph.nodes[n].get("order", 0))):
        if start in seen:
            continue
        queue = deque([start])
        seen.add(start)
        while queue:
            node = queue.popleft()
            ordered.append(node)
            neighbors = [
                n for n, d in sub[node].items()
                if d["kind"] == AFFINITY and n in member_set and n not in seen
            ]
            neighbors.sort(key=lambda n: (-sub[node][n]["strength"], graph.nodes[n].get("order", 0)))
            for n in neighbors:
                seen.add(n)
                queue.append(n)

    rank = {n: i for i, n in enumerate(ordered)}
    block_of: Dict[str, List[str]] = {}
    for block in close_blocks(graph, members):
        block = sorted(block, key=rank.get)
        for n in block:
            block_of[n] = block

    chunks: List[List[str]] = []
    current: List[str] = []
    taken = set()
    for node in ordered:
        if node in taken:
            continue
        block = block_of[node]
        taken.update(block)
        if len(block) > max_size:
            if current:
                chunks.append(current)
                current = []
            chunks.extend(block[i:i + max_size] for i in range(0, len(block), max_size))
            continue
        if len(current) + len(block) > max_size:
            chunks.append(current)
            current = []
        current.extend(block)
    if current:
        chunks.append(current)
    return chunks
