"""
Membrane Genome - Heritable description of one membrane organism

A genome fully determines the shape of a closed membrane curve and the
transport behaviour along it:

LAYERS:
1. Node genes   - Functional role (membrane / ETC / synthase), alignment bias, leak
2. Edge genes   - Chords connecting non-adjacent nodes on the ring
3. Fold genes   - Fourier-like radial folds (cristae)
4. Shape/physics - Ellipse radii, pocket and jitter waves, porosity, coupling

USAGE:
    import numpy as np
    from membrane.factory import create_genome
    from membrane.genome import Genome, validate_genome

    rng = np.random.default_rng(7)
    genome = create_genome(rng)
    assert validate_genome(genome) == []

    data = genome.to_json()
    clone = Genome.from_json(data)
"""

import hashlib
import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple


# =============================================================================
# STRUCTURAL CONSTANTS
# =============================================================================

NODE_MIN = 14
NODE_MAX = 28
FOLD_COUNT = 7

TWO_PI = 2.0 * math.pi


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def min_extra_edges(node_count: int) -> int:
    """Fewest chords a genome with node_count nodes may carry."""
    return max(2, int(math.floor(node_count * 0.15)))


def max_extra_edges(node_count: int) -> int:
    """Most chords a genome with node_count nodes may carry."""
    return max(min_extra_edges(node_count) + 1, int(math.floor(node_count * 0.6)))


def ring_distance(a: int, b: int, n: int) -> int:
    """Shortest hop count between two positions on a ring of n nodes."""
    d = abs(a - b)
    return min(d, n - d)


def is_edge_allowed(source: int, target: int, node_count: int) -> bool:
    """A chord must join two distinct, non-adjacent nodes that exist."""
    if source < 0 or target < 0:
        return False
    if source >= node_count or target >= node_count:
        return False
    return source != target and ring_distance(source, target, node_count) > 1


def edge_key(source: int, target: int) -> Tuple[int, int]:
    """Unordered identity of an edge."""
    return (source, target) if source < target else (target, source)


# =============================================================================
# GENE RANGES
# =============================================================================

@dataclass(frozen=True)
class GeneRange:
    """
    Valid range of a scalar gene.

    create_*: uniform range used when drawing a fresh value
    clamp_*:  range enforced after every mutation (None = unbounded)
    delta:    full width of the uniform mutation step (value moves by ±delta/2)
    """
    create_min: float
    create_max: float
    clamp_min: Optional[float] = None
    clamp_max: Optional[float] = None
    delta: float = 0.0

    @property
    def bounded(self) -> bool:
        return self.clamp_min is not None and self.clamp_max is not None

    def clamp(self, value: float) -> float:
        if not self.bounded:
            return value
        return clamp(value, self.clamp_min, self.clamp_max)

    def contains(self, value: float) -> bool:
        if not self.bounded:
            return math.isfinite(value)
        return self.clamp_min <= value <= self.clamp_max


# Genome-level scalar genes, in the order crossover visits them
GENOME_RANGES: Dict[str, GeneRange] = {
    'radius_x': GeneRange(0.45, 0.80, 0.3, 0.9, 0.1),
    'radius_y': GeneRange(0.45, 0.80, 0.3, 0.9, 0.1),
    'pocket_amp': GeneRange(0.06, 0.24, 0.02, 0.35, 0.06),
    'pocket_freq': GeneRange(1.0, 5.0, 0.8, 6.0, 0.6),
    'pocket_phase': GeneRange(0.0, TWO_PI, None, None, 0.6),
    'angle_jitter': GeneRange(0.0, 0.2, 0.0, 0.35, 0.05),
    'angle_jitter_freq': GeneRange(1.0, 4.0, 0.8, 4.0, 0.5),
    'angle_jitter_phase': GeneRange(0.0, TWO_PI, None, None, 0.6),
    'thickness': GeneRange(0.03, 0.06, 0.03, 0.06, 0.0),
    'porosity': GeneRange(0.25, 0.70, 0.15, 0.9, 0.1),
    'resonance_threshold': GeneRange(0.3, 0.6, 0.2, 0.7, 0.1),
    'coupling_strength': GeneRange(0.2, 0.7, 0.15, 0.85, 0.1),
    'alignment_bias': GeneRange(0.3, 0.7, 0.1, 0.9, 0.1),
    'alignment_variance': GeneRange(0.1, 0.35, 0.05, 0.5, 0.08),
    'edge_weight': GeneRange(0.45, 0.85, 0.2, 1.0, 0.15),
}

# Thickness only affects drawing and is inherited, never perturbed
MUTABLE_GENOME_FIELDS = tuple(name for name in GENOME_RANGES if name != 'thickness')

FOLD_RANGES: Dict[str, GeneRange] = {
    'freq': GeneRange(0.6, 6.1, 0.4, 8.0, 1.0),
    'amp': GeneRange(-0.08, 0.12, -0.2, 0.25, 0.06),
    'phase': GeneRange(0.0, TWO_PI, None, None, 0.6),
}

NODE_RANGES: Dict[str, GeneRange] = {
    's_bias': GeneRange(0.0, 1.0, 0.0, 1.0, 0.2),
    'leak': GeneRange(0.01, 0.07, 0.005, 0.12, 0.03),
}

EDGE_RANGES: Dict[str, GeneRange] = {
    'weight': GeneRange(0.3, 1.0, 0.1, 1.0, 0.2),
    'curvature': GeneRange(-0.6, 0.6, -1.2, 1.2, 0.4),
}


# =============================================================================
# GENE VALUE TYPES
# =============================================================================

class NodeType(Enum):
    """Functional role of a membrane node."""
    MEMBRANE = "membrane"    # Passive lipid segment
    ETC = "etc"              # Electron transport chain: injects gradient
    SYNTHASE = "synthase"    # ATP synthase: converts gradient into ATP


@dataclass
class NodeGene:
    """One node on the membrane ring."""
    type: NodeType = NodeType.MEMBRANE
    s_bias: float = 0.5
    leak: float = 0.03

    def copy(self) -> 'NodeGene':
        return NodeGene(self.type, self.s_bias, self.leak)

    def to_dict(self) -> dict:
        return {'type': self.type.value, 's_bias': self.s_bias, 'leak': self.leak}

    @classmethod
    def from_dict(cls, d: dict) -> 'NodeGene':
        return cls(
            type=NodeType(d['type']),
            s_bias=float(d.get('s_bias', 0.5)),
            leak=float(d.get('leak', 0.03)),
        )


@dataclass
class EdgeGene:
    """A chord between two non-adjacent ring nodes."""
    source: int
    target: int
    weight: float = 0.5
    curvature: float = 0.0

    def key(self) -> Tuple[int, int]:
        return edge_key(self.source, self.target)

    def copy(self) -> 'EdgeGene':
        return EdgeGene(self.source, self.target, self.weight, self.curvature)

    def to_dict(self) -> dict:
        return {
            'source': self.source,
            'target': self.target,
            'weight': self.weight,
            'curvature': self.curvature,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'EdgeGene':
        return cls(
            source=int(d['source']),
            target=int(d['target']),
            weight=float(d.get('weight', 0.5)),
            curvature=float(d.get('curvature', 0.0)),
        )


@dataclass
class FoldGene:
    """A single radial fold harmonic."""
    freq: float = 1.0
    amp: float = 0.0
    phase: float = 0.0

    def copy(self) -> 'FoldGene':
        return FoldGene(self.freq, self.amp, self.phase)

    def to_dict(self) -> dict:
        return {'freq': self.freq, 'amp': self.amp, 'phase': self.phase}

    @classmethod
    def from_dict(cls, d: dict) -> 'FoldGene':
        return cls(float(d['freq']), float(d['amp']), float(d['phase']))


# =============================================================================
# GENOME
# =============================================================================

@dataclass
class Genome:
    """
    Complete genome for a membrane organism.

    The genome stores structural *intent*: after a node-count shrink it may
    still reference chords that no longer fit. The graph builder decides what
    is currently valid.
    """
    node_count: int
    nodes: List[NodeGene] = field(default_factory=list)
    edges: List[EdgeGene] = field(default_factory=list)

    # Shape
    radius_x: float = 0.6
    radius_y: float = 0.6
    pocket_amp: float = 0.1
    pocket_freq: float = 2.0
    pocket_phase: float = 0.0
    angle_jitter: float = 0.0
    angle_jitter_freq: float = 2.0
    angle_jitter_phase: float = 0.0
    folds: List[FoldGene] = field(default_factory=lambda: [FoldGene() for _ in range(FOLD_COUNT)])

    # Physics
    thickness: float = 0.04
    porosity: float = 0.4
    resonance_threshold: float = 0.45
    coupling_strength: float = 0.4
    alignment_bias: float = 0.5
    alignment_variance: float = 0.2
    edge_weight: float = 0.6

    @property
    def id(self) -> str:
        """Content-derived identifier (changes whenever any gene changes)."""
        return hashlib.md5(self.to_json(indent=None).encode()).hexdigest()[:16]

    @property
    def chord_count(self) -> int:
        return len(self.edges)

    def scalar_values(self) -> Dict[str, float]:
        """All genome-level scalar genes by name."""
        return {name: getattr(self, name) for name in GENOME_RANGES}

    def copy(self) -> 'Genome':
        """Structural clone; the copy shares nothing with the original."""
        clone = Genome(
            node_count=self.node_count,
            nodes=[n.copy() for n in self.nodes],
            edges=[e.copy() for e in self.edges],
            folds=[f.copy() for f in self.folds],
        )
        for name in GENOME_RANGES:
            setattr(clone, name, getattr(self, name))
        return clone

    def to_dict(self) -> dict:
        """Serialize genome to dictionary."""
        d = {'node_count': self.node_count}
        d.update(self.scalar_values())
        d['nodes'] = [n.to_dict() for n in self.nodes]
        d['edges'] = [e.to_dict() for e in self.edges]
        d['folds'] = [f.to_dict() for f in self.folds]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> 'Genome':
        """Deserialize genome from dictionary."""
        genome = cls(
            node_count=int(d['node_count']),
            nodes=[NodeGene.from_dict(n) for n in d.get('nodes', [])],
            edges=[EdgeGene.from_dict(e) for e in d.get('edges', [])],
            folds=[FoldGene.from_dict(f) for f in d.get('folds', [])],
        )
        for name in GENOME_RANGES:
            if name in d:
                setattr(genome, name, float(d[name]))
        return genome

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, s: str) -> 'Genome':
        """Deserialize from JSON string."""
        return cls.from_dict(json.loads(s))

    def __repr__(self) -> str:
        return (f"Genome(nodes={self.node_count}, chords={len(self.edges)}, "
                f"porosity={self.porosity:.2f})")


# =============================================================================
# VALIDATION
# =============================================================================

def validate_genome(genome: Genome) -> List[str]:
    """
    Check every structural invariant of a genome.

    Returns a list of human-readable violations; empty when the genome is valid.
    """
    problems = []
    n = genome.node_count

    if not NODE_MIN <= n <= NODE_MAX:
        problems.append(f"node_count {n} outside [{NODE_MIN}, {NODE_MAX}]")
    if len(genome.nodes) != n:
        problems.append(f"{len(genome.nodes)} node genes for node_count {n}")
    if len(genome.folds) != FOLD_COUNT:
        problems.append(f"{len(genome.folds)} folds, expected {FOLD_COUNT}")

    seen: Set[Tuple[int, int]] = set()
    for edge in genome.edges:
        if not is_edge_allowed(edge.source, edge.target, n):
            problems.append(f"invalid chord {edge.source}-{edge.target}")
        key = edge.key()
        if key in seen:
            problems.append(f"duplicate chord {key[0]}-{key[1]}")
        seen.add(key)
        for name, gene_range in EDGE_RANGES.items():
            if not gene_range.contains(getattr(edge, name)):
                problems.append(f"chord {key[0]}-{key[1]} {name} out of range")

    low, high = min_extra_edges(n), max_extra_edges(n)
    if not low <= len(genome.edges) <= high:
        problems.append(f"{len(genome.edges)} chords outside [{low}, {high}]")

    for name, gene_range in GENOME_RANGES.items():
        if not gene_range.contains(getattr(genome, name)):
            problems.append(f"{name}={getattr(genome, name):.4f} out of range")

    for i, node in enumerate(genome.nodes):
        for name, gene_range in NODE_RANGES.items():
            if not gene_range.contains(getattr(node, name)):
                problems.append(f"node {i} {name} out of range")

    for i, fold in enumerate(genome.folds):
        for name, gene_range in FOLD_RANGES.items():
            if not gene_range.contains(getattr(fold, name)):
                problems.append(f"fold {i} {name} out of range")

    return problems


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    'NODE_MIN',
    'NODE_MAX',
    'FOLD_COUNT',
    'GeneRange',
    'GENOME_RANGES',
    'MUTABLE_GENOME_FIELDS',
    'FOLD_RANGES',
    'NODE_RANGES',
    'EDGE_RANGES',
    'NodeType',
    'NodeGene',
    'EdgeGene',
    'FoldGene',
    'Genome',
    'clamp',
    'min_extra_edges',
    'max_extra_edges',
    'ring_distance',
    'is_edge_allowed',
    'edge_key',
    'validate_genome',
]
