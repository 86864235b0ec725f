"""
Membrane Graph Builder - Grow a concrete membrane from a genome

The builder is the bridge between genotype and phenotype, and the only place
that decides which chords are currently valid. A genome that shrank may still
carry chords to nodes it no longer has; those are dropped here, silently.

The same pure function serves fitness evaluation and drawing, so what is
shown is exactly what was scored.
"""

import math
from dataclasses import dataclass, field
from typing import List

from .genome import (
    NodeType,
    NodeGene,
    Genome,
    clamp,
    is_edge_allowed,
)


FOLD_OFFSET_LIMIT = 0.35
RING_WEIGHT_MIN = 0.2
CHORD_WEIGHT_MIN = 0.1
CURVATURE_LIMIT = 1.2
NODE_LEAK_MIN = 0.005
NODE_LEAK_MAX = 0.12

_NEUTRAL_NODE = NodeGene(NodeType.MEMBRANE, 0.5, 0.03)


@dataclass(frozen=True)
class MembraneNode:
    """A positioned membrane node with its expressed alignment and leak."""
    id: int
    type: NodeType
    x: float
    y: float
    s: float
    leak: float


@dataclass(frozen=True)
class MembraneEdge:
    """An edge of the built graph; ring=True for the structural cycle."""
    source: int
    target: int
    weight: float
    curvature: float = 0.0
    ring: bool = False


@dataclass(frozen=True)
class MembraneGraph:
    """Nodes on a warped closed curve plus ring edges and valid chords."""
    nodes: List[MembraneNode] = field(default_factory=list)
    edges: List[MembraneEdge] = field(default_factory=list)

    @property
    def ring_edges(self) -> List[MembraneEdge]:
        return [e for e in self.edges if e.ring]

    @property
    def chords(self) -> List[MembraneEdge]:
        return [e for e in self.edges if not e.ring]

    @property
    def perimeter(self) -> float:
        """Arc length of the closed curve through consecutive nodes."""
        n = len(self.nodes)
        total = 0.0
        for i, node in enumerate(self.nodes):
            nxt = self.nodes[(i + 1) % n]
            total += math.hypot(node.x - nxt.x, node.y - nxt.y)
        return total

    def nodes_of_type(self, node_type: NodeType) -> List[int]:
        return [node.id for node in self.nodes if node.type == node_type]


def _radial_offset(genome: Genome, angle: float) -> float:
    offset = 0.0
    for fold in genome.folds:
        offset += fold.amp * math.sin(fold.freq * angle + fold.phase)
    offset += genome.pocket_amp * math.sin(angle * genome.pocket_freq + genome.pocket_phase)
    return clamp(offset, -FOLD_OFFSET_LIMIT, FOLD_OFFSET_LIMIT)


def build_graph(genome: Genome, scale: float) -> MembraneGraph:
    """
    Build the membrane graph of a genome at the given scale.

    Args:
        genome: Source genome (not modified)
        scale: Size of the drawing/simulation frame

    Returns:
        MembraneGraph with node_count nodes, the full ring and the chords
        that are valid for the current node count.
    """
    n = genome.node_count
    base_nodes = genome.nodes or [_NEUTRAL_NODE]
    ring_weight = clamp(genome.edge_weight, RING_WEIGHT_MIN, 1.0)

    nodes = []
    for i in range(n):
        t = i / n
        angle = t * 2.0 * math.pi
        jitter = math.sin(angle * genome.angle_jitter_freq + genome.angle_jitter_phase) * genome.angle_jitter
        warped = angle + jitter

        offset = _radial_offset(genome, angle)

        base_x = math.cos(warped) * genome.radius_x * scale
        base_y = math.sin(warped) * genome.radius_y * scale
        normal = warped + math.pi / 2
        x = base_x + math.cos(normal) * offset * scale
        y = base_y + math.sin(normal) * offset * scale

        # Missing genes reuse the last one
        gene = base_nodes[i] if i < len(base_nodes) else base_nodes[-1]
        wave = math.sin(t * math.pi * 4 + genome.alignment_variance * 8)
        s = clamp(genome.alignment_bias + (gene.s_bias - 0.5) * 0.6 + wave * genome.alignment_variance, 0.0, 1.0)
        leak = clamp(gene.leak + (1.0 - s) * 0.03, NODE_LEAK_MIN, NODE_LEAK_MAX)

        nodes.append(MembraneNode(id=i, type=gene.type, x=x, y=y, s=s, leak=leak))

    edges = [
        MembraneEdge(source=i, target=(i + 1) % n, weight=ring_weight, curvature=0.0, ring=True)
        for i in range(n)
    ]

    for chord in genome.edges:
        if not is_edge_allowed(chord.source, chord.target, n):
            continue
        edges.append(MembraneEdge(
            source=chord.source,
            target=chord.target,
            weight=clamp(chord.weight, CHORD_WEIGHT_MIN, 1.0),
            curvature=clamp(chord.curvature, -CURVATURE_LIMIT, CURVATURE_LIMIT),
            ring=False,
        ))

    return MembraneGraph(nodes=nodes, edges=edges)


__all__ = [
    'MembraneNode',
    'MembraneEdge',
    'MembraneGraph',
    'build_graph',
]
