"""
Genetic Operators - Mutation and crossover of membrane genomes

Both operators return a new genome and never touch their inputs. Every
structural change is followed by normalize_edges(), so offspring always
satisfy the chord invariants.

USAGE:
    rng = np.random.default_rng()
    child = mutate(crossover(parent1, parent2, rng), rng, rate=0.3)
    # or
    child = breed(parent1, parent2, rng)
"""

from typing import Optional

import numpy as np

from .factory import create_edge, create_node, normalize_edges, random_node_type, rand_int, add_edge_unique
from .genome import (
    NODE_MIN,
    NODE_MAX,
    GENOME_RANGES,
    FOLD_RANGES,
    NODE_RANGES,
    EDGE_RANGES,
    GeneRange,
    Genome,
    min_extra_edges,
)


# =============================================================================
# STRUCTURAL MUTATION PROBABILITIES (independent of the rate argument)
# =============================================================================

GROW_CHANCE = 0.08
SHRINK_CHANCE = 0.06
TYPE_REROLL_CHANCE = 0.05
EDGE_REPLACE_CHANCE = 0.08
EDGE_ADD_CHANCE = 0.18
EDGE_REMOVE_CHANCE = 0.12

SHAPE_FIELDS = (
    'radius_x', 'radius_y',
    'pocket_amp', 'pocket_freq', 'pocket_phase',
    'angle_jitter', 'angle_jitter_freq', 'angle_jitter_phase',
)
PHYSICS_FIELDS = (
    'porosity', 'resonance_threshold', 'coupling_strength',
    'alignment_bias', 'alignment_variance', 'edge_weight',
)


def _perturb(value: float, gene_range: GeneRange, rng: np.random.Generator) -> float:
    """Move value by a uniform step of width gene_range.delta and clamp."""
    return gene_range.clamp(value + (rng.random() - 0.5) * gene_range.delta)


def _maybe_perturb(obj, name: str, gene_range: GeneRange, rate: float,
                   rng: np.random.Generator) -> None:
    if rng.random() < rate:
        setattr(obj, name, _perturb(getattr(obj, name), gene_range, rng))


# =============================================================================
# MUTATION
# =============================================================================

def mutate(genome: Genome, rng: Optional[np.random.Generator] = None,
           rate: float = 0.3) -> Genome:
    """
    Return a mutated copy of genome.

    Args:
        genome: Parent genome (not modified)
        rng: Random source
        rate: Probability that each continuous gene is perturbed

    Structural mutations (node growth/shrink, type re-roll, chord
    replacement/addition/removal) fire with fixed probabilities, whatever
    the rate.
    """
    rng = rng if rng is not None else np.random.default_rng()
    g = genome.copy()

    # Node count
    if rng.random() < GROW_CHANCE and g.node_count < NODE_MAX:
        g.node_count += 1
        g.nodes.append(create_node(rng))
    elif rng.random() < SHRINK_CHANCE and g.node_count > NODE_MIN:
        g.node_count -= 1
        g.nodes = g.nodes[:g.node_count]
        g.edges = [e for e in g.edges if e.source < g.node_count and e.target < g.node_count]

    if len(g.nodes) > g.node_count:
        g.nodes = g.nodes[:g.node_count]
    while len(g.nodes) < g.node_count:
        g.nodes.append(create_node(rng))

    # Shape
    for name in SHAPE_FIELDS:
        _maybe_perturb(g, name, GENOME_RANGES[name], rate, rng)

    for fold in g.folds:
        for name, gene_range in FOLD_RANGES.items():
            _maybe_perturb(fold, name, gene_range, rate, rng)

    # Physics
    for name in PHYSICS_FIELDS:
        _maybe_perturb(g, name, GENOME_RANGES[name], rate, rng)

    for node in g.nodes:
        _maybe_perturb(node, 's_bias', NODE_RANGES['s_bias'], rate, rng)
        _maybe_perturb(node, 'leak', NODE_RANGES['leak'], rate, rng)
        if rng.random() < TYPE_REROLL_CHANCE:
            node.type = random_node_type(rng)

    # Chords
    for edge in g.edges:
        _maybe_perturb(edge, 'weight', EDGE_RANGES['weight'], rate, rng)
        _maybe_perturb(edge, 'curvature', EDGE_RANGES['curvature'], rate, rng)
        if rng.random() < EDGE_REPLACE_CHANCE:
            fresh = create_edge(g.node_count, rng)
            edge.source, edge.target = fresh.source, fresh.target
            edge.weight, edge.curvature = fresh.weight, fresh.curvature

    if rng.random() < EDGE_ADD_CHANCE:
        g.edges.append(create_edge(g.node_count, rng))
    if rng.random() < EDGE_REMOVE_CHANCE and len(g.edges) > min_extra_edges(g.node_count):
        del g.edges[rand_int(rng, 0, len(g.edges) - 1)]

    g.edges = normalize_edges(g.edges, g.node_count, rng)
    return g


# =============================================================================
# CROSSOVER
# =============================================================================

def crossover(parent1: Genome, parent2: Genome,
              rng: Optional[np.random.Generator] = None) -> Genome:
    """
    Uniform crossover of two genomes.

    - Non-explicit fields come from a randomly chosen base parent
    - Node count from either parent; node genes position by position
    - Chords pooled from about half of each parent's chords
    - Each scalar gene and each fold slot taken from parent2 half the time
    """
    rng = rng if rng is not None else np.random.default_rng()
    child = (parent1 if rng.random() < 0.5 else parent2).copy()
    child.node_count = parent1.node_count if rng.random() < 0.5 else parent2.node_count

    nodes = []
    for i in range(child.node_count):
        n1 = parent1.nodes[i] if i < len(parent1.nodes) else None
        n2 = parent2.nodes[i] if i < len(parent2.nodes) else None
        if n1 is not None and n2 is not None:
            nodes.append((n1 if rng.random() < 0.5 else n2).copy())
        elif n1 is not None:
            nodes.append(n1.copy())
        elif n2 is not None:
            nodes.append(n2.copy())
        else:
            nodes.append(create_node(rng))
    child.nodes = nodes

    pool = []
    used = set()
    for parent in (parent1, parent2):
        for edge in parent.edges:
            if rng.random() < 0.5:
                add_edge_unique(pool, edge, child.node_count, used)
    child.edges = normalize_edges(pool, child.node_count, rng)

    for name in GENOME_RANGES:
        if rng.random() < 0.5:
            setattr(child, name, getattr(parent2, name))

    folds = []
    for i, fold in enumerate(parent1.folds):
        if rng.random() < 0.5 and i < len(parent2.folds):
            folds.append(parent2.folds[i].copy())
        else:
            folds.append(fold.copy())
    child.folds = folds

    return child


def breed(parent1: Genome, parent2: Genome,
          rng: Optional[np.random.Generator] = None,
          rate: float = 0.3) -> Genome:
    """Crossover followed by mutation: one offspring of two parents."""
    rng = rng if rng is not None else np.random.default_rng()
    return mutate(crossover(parent1, parent2, rng), rng, rate)


__all__ = [
    'mutate',
    'crossover',
    'breed',
]
