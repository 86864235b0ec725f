"""
Shared fixtures for the membrane evolution tests.
"""

import numpy as np
import pytest

from membrane.config import create_config
from membrane.genome import FoldGene, Genome, NodeGene, NodeType


# ==========================================
# RANDOM SOURCES
# ==========================================

@pytest.fixture
def rng():
    """Seeded generator; every test gets the same stream."""
    return np.random.default_rng(1234)


# ==========================================
# HANDCRAFTED GENOMES
# ==========================================

def build_scenario_genome(**overrides) -> Genome:
    """
    16 nodes, one ETC at 0, one synthase at 8, no chords.

    Nodes 9 and 10 are much leakier than the rest so they become the sinks.
    Alignment is kept low and nearly flat so coherence stays small.
    """
    nodes = [NodeGene(NodeType.MEMBRANE, 0.5, 0.01) for _ in range(16)]
    nodes[0] = NodeGene(NodeType.ETC, 0.5, 0.01)
    nodes[8] = NodeGene(NodeType.SYNTHASE, 0.5, 0.01)
    nodes[9] = NodeGene(NodeType.MEMBRANE, 0.5, 0.11)
    nodes[10] = NodeGene(NodeType.MEMBRANE, 0.5, 0.11)

    genome = Genome(
        node_count=16,
        nodes=nodes,
        edges=[],
        folds=[FoldGene(2.0, 0.02, 0.0) for _ in range(7)],
        alignment_bias=0.3,
        alignment_variance=0.05,
    )
    for name, value in overrides.items():
        setattr(genome, name, value)
    return genome


@pytest.fixture
def scenario_genome():
    """Factory for the handcrafted transport scenario genome."""
    return build_scenario_genome


# ==========================================
# CONFIGURATIONS
# ==========================================

@pytest.fixture
def small_config():
    """Small, fast configuration for controller tests."""
    return create_config(population_size=6, elite_count=2, parent_pool_size=4, steps=30)
