"""
Transport Simulator - Gradient and ATP flow along a membrane

Runs a fixed number of discrete steps over a built membrane graph and turns
what happened into a fitness score.

State per node:
- H: proton gradient (charge), injected at ETC sources
- A: ATP, produced at synthases from local H
- q: coherence, a sigmoid-gated alignment signal (quantum mode only)

Feedback loop in quantum mode: coherence raises edge conductance and
synthase efficiency, which changes where H and A go.

Each step:
1. Inject H at sources
2. (quantum) compute q from neighbour-weighted alignment
3. Conservative exchange of H along every edge, floor at 0
4. Leakage of H
5. Synthesis of A at synthases
6. Conservative exchange of A along every edge, floor at 0
7. Sinks absorb A
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import TransportConfig
from .genome import Genome, NodeType
from .graph import MembraneGraph, build_graph


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class TransportResult:
    """Fitness and auxiliary metrics of one simulated membrane."""
    fitness: float
    delivered: float
    leaked: float
    coherence: float
    fold_complexity: float
    node_count: int
    chord_count: int
    perimeter: float
    coherence_penalty: float = 0.0
    uniformity_penalty: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'fitness': self.fitness,
            'delivered': self.delivered,
            'leaked': self.leaked,
            'coherence': self.coherence,
            'fold_complexity': self.fold_complexity,
            'node_count': self.node_count,
            'chord_count': self.chord_count,
            'perimeter': self.perimeter,
            'coherence_penalty': self.coherence_penalty,
            'uniformity_penalty': self.uniformity_penalty,
        }


@dataclass(frozen=True)
class EvaluatedOrganism:
    """A genome together with the metrics it scored in one generation."""
    genome: Genome
    result: TransportResult

    @property
    def fitness(self) -> float:
        return self.result.fitness

    @property
    def delivered(self) -> float:
        return self.result.delivered

    @property
    def leaked(self) -> float:
        return self.result.leaked

    @property
    def coherence(self) -> float:
        return self.result.coherence

    @property
    def fold_complexity(self) -> float:
        return self.result.fold_complexity

    @property
    def node_count(self) -> int:
        return self.result.node_count

    @property
    def chord_count(self) -> int:
        return self.result.chord_count

    @property
    def perimeter(self) -> float:
        return self.result.perimeter


# =============================================================================
# BUILDING BLOCKS
# =============================================================================

def sigmoid(x, slope: float = 1.0):
    """Logistic function 1 / (1 + exp(-slope * x))."""
    return 1.0 / (1.0 + np.exp(-slope * np.asarray(x, dtype=float)))


def exchange_deltas(values: np.ndarray, src: np.ndarray, dst: np.ndarray,
                    conductance: np.ndarray) -> np.ndarray:
    """
    Per-node change from a conservative exchange along edges.

    For every edge (i, j): flux = conductance * (v_j - v_i), node i gains
    flux and node j loses it, so the deltas always sum to zero.
    """
    flux = conductance * (values[dst] - values[src])
    delta = np.zeros_like(values, dtype=float)
    np.add.at(delta, src, flux)
    np.add.at(delta, dst, -flux)
    return delta


def chord_bonus(chord_count: int, node_count: int, config: Optional[TransportConfig] = None) -> float:
    """Chord reward, capped at half the node count."""
    config = config or TransportConfig()
    return min(chord_count, node_count * config.chord_cap_fraction) * config.chord_bonus


def neighbor_alignment(graph: MembraneGraph, min_weight: float = 0.1) -> np.ndarray:
    """Weighted mean of s_i * s_j over each node's neighbours (0 if isolated)."""
    n = len(graph.nodes)
    s = np.array([node.s for node in graph.nodes], dtype=float)
    src = np.array([e.source for e in graph.edges], dtype=int)
    dst = np.array([e.target for e in graph.edges], dtype=int)
    w = np.clip(np.array([e.weight for e in graph.edges], dtype=float), min_weight, 1.0)

    pair = s[src] * s[dst] * w
    total = np.zeros(n)
    weight_sum = np.zeros(n)
    np.add.at(total, src, pair)
    np.add.at(total, dst, pair)
    np.add.at(weight_sum, src, w)
    np.add.at(weight_sum, dst, w)

    alignment = np.zeros(n)
    np.divide(total, weight_sum, out=alignment, where=weight_sum > 0)
    return alignment


def _unique(indices: Sequence[int], n: int) -> List[int]:
    seen = []
    for i in indices:
        i = i % n
        if i not in seen:
            seen.append(i)
    return seen


def assign_roles(graph: MembraneGraph, sink_fraction: float = 0.12):
    """
    Pick source, synthase and sink node indices.

    Missing sources or synthases fall back to three evenly spaced ring
    positions; sinks are the leakiest unreserved nodes, falling back to two
    opposite positions.
    """
    n = len(graph.nodes)

    sources = graph.nodes_of_type(NodeType.ETC)
    synthases = graph.nodes_of_type(NodeType.SYNTHASE)
    if not sources:
        sources = [0, n // 3, (2 * n) // 3]
    if not synthases:
        synthases = [n // 6, n // 2, (5 * n) // 6]
    sources = _unique(sources, n)
    synthases = _unique(synthases, n)

    reserved = set(sources) | set(synthases)
    sink_count = max(2, int(n * sink_fraction))
    sinks = []
    for node in sorted(graph.nodes, key=lambda node: node.leak, reverse=True):
        if len(sinks) >= sink_count:
            break
        if node.id not in reserved:
            sinks.append(node.id)
    if not sinks:
        sinks = [n // 4, (3 * n) // 4]

    return sources, synthases, sinks


# =============================================================================
# SIMULATION
# =============================================================================

def simulate_fitness(genome: Genome, use_quantum: bool,
                     config: Optional[TransportConfig] = None) -> TransportResult:
    """
    Simulate gradient and ATP transport on a genome's membrane.

    Args:
        genome: Genome to evaluate
        use_quantum: Enable the coherence feedback term
        config: Simulation constants (defaults to the canonical rule set)

    Returns:
        TransportResult with fitness and metrics
    """
    cfg = config or TransportConfig()
    graph = build_graph(genome, cfg.reference_scale)
    n = len(graph.nodes)

    sources, synthases, sinks = assign_roles(graph, cfg.sink_fraction)
    sources = np.array(sources, dtype=int)
    synthases = np.array(synthases, dtype=int)
    sinks = np.array(sinks, dtype=int)

    leak = np.array([node.leak for node in graph.nodes], dtype=float)
    src = np.array([e.source for e in graph.edges], dtype=int)
    dst = np.array([e.target for e in graph.edges], dtype=int)
    weight = np.array([e.weight for e in graph.edges], dtype=float)

    H = np.zeros(n)
    A = np.zeros(n)
    q = np.zeros(n)

    # Node alignment depends only on the graph, so q and the coherence-scaled
    # conductances are the same at every step of a run
    conductance = genome.porosity * (cfg.conductance_base + cfg.conductance_weight * weight)
    efficiency = np.full(len(synthases), cfg.base_efficiency)
    if use_quantum:
        alignment = neighbor_alignment(graph, cfg.neighbor_weight_min)
        q = sigmoid(alignment - genome.resonance_threshold, cfg.coherence_slope)
        conductance = conductance * (1.0 + genome.coupling_strength * (q[src] + q[dst]) / 2.0)
        coherent = q[synthases] > cfg.coherent_threshold
        efficiency[coherent] *= 1.0 + genome.coupling_strength * cfg.quantum_efficiency_gain
    atp_conductance = cfg.atp_diffusion * weight

    delivered = 0.0
    leaked = 0.0
    coherence_sum = 0.0
    coherence_count = 0

    for _ in range(cfg.steps):
        H[sources] += cfg.source_injection

        if use_quantum:
            coherence_sum += float(q.sum())
            coherence_count += n

        H = np.maximum(0.0, H + exchange_deltas(H, src, dst, conductance))

        loss = H * leak
        H -= loss
        leaked += float(loss.sum())

        production = H[synthases] * efficiency * cfg.synthesis_fraction
        A[synthases] += production
        H[synthases] -= production * 0.5

        A = np.maximum(0.0, A + exchange_deltas(A, src, dst, atp_conductance))

        take = np.minimum(A[sinks], cfg.sink_capacity)
        A[sinks] -= take
        delivered += float(take.sum())

    perimeter = graph.perimeter
    fold_complexity = float(sum(abs(fold.amp) for fold in genome.folds))
    chord_count = len(genome.edges)

    fitness = delivered * cfg.delivered_weight
    fitness -= perimeter * cfg.perimeter_cost
    fitness -= leaked * cfg.leak_cost
    fitness += fold_complexity * cfg.fold_bonus
    fitness += chord_bonus(chord_count, n, cfg)

    coherence = 0.0
    coherence_penalty = 0.0
    uniformity_penalty = 0.0
    if use_quantum and coherence_count > 0:
        coherence = coherence_sum / coherence_count
        coherence_penalty = (coherence ** cfg.coherence_exponent) * cfg.coherence_cost
        # Spatially uniform coherence is penalised: structure must matter
        q_variance = float(np.sum((q - coherence) ** 2) / n)
        if q_variance < cfg.uniformity_variance:
            uniformity_penalty = cfg.uniformity_penalty
        fitness -= coherence_penalty + uniformity_penalty

    return TransportResult(
        fitness=max(cfg.fitness_floor, fitness),
        delivered=delivered,
        leaked=leaked,
        coherence=coherence,
        fold_complexity=fold_complexity,
        node_count=n,
        chord_count=chord_count,
        perimeter=perimeter,
        coherence_penalty=coherence_penalty,
        uniformity_penalty=uniformity_penalty,
    )


class TransportSimulator:
    """
    Evaluates genomes under one configuration.

    USAGE:
        simulator = TransportSimulator()
        organism = simulator.evaluate(genome, use_quantum=True)
        ranked = simulator.rank(population, use_quantum=False)
    """

    def __init__(self, config: Optional[TransportConfig] = None):
        self.config = config or TransportConfig()

    def evaluate(self, genome: Genome, use_quantum: bool) -> EvaluatedOrganism:
        return EvaluatedOrganism(genome, simulate_fitness(genome, use_quantum, self.config))

    def rank(self, genomes: Sequence[Genome], use_quantum: bool) -> List[EvaluatedOrganism]:
        """Evaluate every genome and sort best first."""
        evaluated = [self.evaluate(g, use_quantum) for g in genomes]
        evaluated.sort(key=lambda org: org.fitness, reverse=True)
        return evaluated


__all__ = [
    'TransportResult',
    'EvaluatedOrganism',
    'TransportSimulator',
    'simulate_fitness',
    'exchange_deltas',
    'chord_bonus',
    'neighbor_alignment',
    'assign_roles',
    'sigmoid',
]
