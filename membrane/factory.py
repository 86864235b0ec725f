"""
Genome Factory - Random genomes and structural primitives

Every function takes an explicit numpy Generator so that whole evolutionary
runs can be replayed from a seed.

The edge routines enforce the chord invariants:
- no self loops and no chords between ring neighbours
- no duplicate undirected chords
- chord count within [min_extra_edges(n), max_extra_edges(n)]

normalize_edges() is the single gate for the chord-count invariant and must
run after every structural change.
"""

from typing import List, Optional, Set, Tuple

import numpy as np

from .genome import (
    FOLD_COUNT,
    GENOME_RANGES,
    FOLD_RANGES,
    NODE_RANGES,
    EDGE_RANGES,
    NodeType,
    NodeGene,
    EdgeGene,
    FoldGene,
    Genome,
    is_edge_allowed,
    edge_key,
    min_extra_edges,
    max_extra_edges,
)


EDGE_DRAW_ATTEMPTS = 20

# Initial genomes start away from the node-count bounds
INITIAL_NODES_MIN = 16
INITIAL_NODES_MAX = 24


def rand_int(rng: np.random.Generator, low: int, high: int) -> int:
    """Uniform integer in [low, high] inclusive."""
    return int(rng.integers(low, high + 1))


def uniform(rng: np.random.Generator, low: float, high: float) -> float:
    return low + float(rng.random()) * (high - low)


# =============================================================================
# NODES
# =============================================================================

def random_node_type(rng: np.random.Generator) -> NodeType:
    """ETC 20%, synthase 15%, plain membrane 65%."""
    r = rng.random()
    if r < 0.2:
        return NodeType.ETC
    if r < 0.35:
        return NodeType.SYNTHASE
    return NodeType.MEMBRANE


def create_node(rng: np.random.Generator) -> NodeGene:
    """Create a fresh random node gene."""
    leak = NODE_RANGES['leak']
    return NodeGene(
        type=random_node_type(rng),
        s_bias=float(rng.random()),
        leak=uniform(rng, leak.create_min, leak.create_max),
    )


# =============================================================================
# EDGES
# =============================================================================

def create_edge(node_count: int, rng: np.random.Generator) -> EdgeGene:
    """
    Create a random chord.

    Tries a bounded number of random pairs; if none is allowed the chord
    falls back to (source, source + 2), which is always valid on a ring of
    at least five nodes.
    """
    source = target = 0
    for _ in range(EDGE_DRAW_ATTEMPTS):
        source = rand_int(rng, 0, node_count - 1)
        target = rand_int(rng, 0, node_count - 1)
        if is_edge_allowed(source, target, node_count):
            break

    if not is_edge_allowed(source, target, node_count):
        target = (source + 2) % node_count

    weight = EDGE_RANGES['weight']
    curvature = EDGE_RANGES['curvature']
    return EdgeGene(
        source=source,
        target=target,
        weight=weight.clamp(uniform(rng, weight.create_min, weight.create_max)),
        curvature=curvature.clamp(uniform(rng, curvature.create_min, curvature.create_max)),
    )


def add_edge_unique(edges: List[EdgeGene], edge: EdgeGene, node_count: int,
                    used_keys: Set[Tuple[int, int]]) -> bool:
    """
    Append a clamped copy of edge if it is allowed and not already present.

    Returns True when the edge was added.
    """
    if not is_edge_allowed(edge.source, edge.target, node_count):
        return False
    key = edge_key(edge.source, edge.target)
    if key in used_keys:
        return False
    used_keys.add(key)

    edges.append(EdgeGene(
        source=edge.source,
        target=edge.target,
        weight=EDGE_RANGES['weight'].clamp(edge.weight),
        curvature=EDGE_RANGES['curvature'].clamp(edge.curvature),
    ))
    return True


def normalize_edges(edges: List[EdgeGene], node_count: int,
                    rng: np.random.Generator) -> List[EdgeGene]:
    """
    Return a cleaned chord list that satisfies every chord invariant.

    Duplicates and invalid chords are dropped, random chords are removed
    while above the maximum, and fresh chords are added while below the
    minimum.
    """
    used: Set[Tuple[int, int]] = set()
    cleaned: List[EdgeGene] = []
    for edge in edges:
        add_edge_unique(cleaned, edge, node_count, used)

    low = min_extra_edges(node_count)
    high = max_extra_edges(node_count)

    while len(cleaned) > high:
        del cleaned[rand_int(rng, 0, len(cleaned) - 1)]
    while len(cleaned) < low:
        add_edge_unique(cleaned, create_edge(node_count, rng), node_count, used)

    return cleaned


# =============================================================================
# GENOMES
# =============================================================================

def create_fold(rng: np.random.Generator) -> FoldGene:
    return FoldGene(**{
        name: uniform(rng, r.create_min, r.create_max)
        for name, r in FOLD_RANGES.items()
    })


def create_genome(rng: Optional[np.random.Generator] = None) -> Genome:
    """
    Create a random genome.

    Node count, nodes and chords are drawn first, then every shape and
    physics gene is drawn uniformly from its creation range.
    """
    rng = rng if rng is not None else np.random.default_rng()

    node_count = rand_int(rng, INITIAL_NODES_MIN, INITIAL_NODES_MAX)
    nodes = [create_node(rng) for _ in range(node_count)]
    edge_count = rand_int(rng, min_extra_edges(node_count), max_extra_edges(node_count))
    edges = normalize_edges(
        [create_edge(node_count, rng) for _ in range(edge_count)],
        node_count,
        rng,
    )

    genome = Genome(node_count=node_count, nodes=nodes, edges=edges)
    for name, r in GENOME_RANGES.items():
        setattr(genome, name, uniform(rng, r.create_min, r.create_max))
    genome.folds = [create_fold(rng) for _ in range(FOLD_COUNT)]
    return genome


def create_population(size: int, rng: Optional[np.random.Generator] = None) -> List[Genome]:
    """Create a list of independent random genomes."""
    rng = rng if rng is not None else np.random.default_rng()
    return [create_genome(rng) for _ in range(size)]


__all__ = [
    'random_node_type',
    'create_node',
    'create_edge',
    'add_edge_unique',
    'normalize_edges',
    'create_fold',
    'create_genome',
    'create_population',
]
