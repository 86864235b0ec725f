# Membrane Evolution Engine
# Classical vs coherence-augmented energy transport on evolving membranes
#
# Shape is fitness. A genome grows a closed membrane curve; gradient and ATP
# flow along it; whatever reaches the sinks is what evolution rewards.
#
# MODULES:
# ├── genome.py       - Gene value types, ranges, invariants, serialization
# ├── factory.py      - Random nodes, chords and genomes
# ├── graph.py        - Genome -> positioned membrane graph (pure)
# ├── transport.py    - Gradient/ATP/coherence simulation and fitness
# ├── operators.py    - Mutation and crossover
# ├── evolution.py    - Two-population generational controller
# ├── config.py       - Transport and evolution parameters
# └── persistence.py  - Save/load runs as JSON

# =============================================================================
# GENOME
# =============================================================================

from .genome import (
    NODE_MIN,
    NODE_MAX,
    FOLD_COUNT,
    NodeType,
    NodeGene,
    EdgeGene,
    FoldGene,
    Genome,
    validate_genome,
    min_extra_edges,
    max_extra_edges,
)

from .factory import (
    create_node,
    create_edge,
    normalize_edges,
    create_genome,
    create_population,
)

# =============================================================================
# PHENOTYPE AND FITNESS
# =============================================================================

from .graph import (
    MembraneNode,
    MembraneEdge,
    MembraneGraph,
    build_graph,
)

from .transport import (
    TransportResult,
    EvaluatedOrganism,
    TransportSimulator,
    simulate_fitness,
)

# =============================================================================
# EVOLUTION
# =============================================================================

from .operators import (
    mutate,
    crossover,
    breed,
)

from .evolution import (
    EvolutionState,
    PopulationKind,
    EvolutionController,
)

from .config import (
    TransportConfig,
    EvolutionConfig,
    create_config,
)

from .persistence import (
    EvolutionPersistence,
    save_evolution,
    load_evolution,
)

__version__ = "1.0.0"

__all__ = [
    # Genome
    'NODE_MIN',
    'NODE_MAX',
    'FOLD_COUNT',
    'NodeType',
    'NodeGene',
    'EdgeGene',
    'FoldGene',
    'Genome',
    'validate_genome',
    'min_extra_edges',
    'max_extra_edges',
    'create_node',
    'create_edge',
    'normalize_edges',
    'create_genome',
    'create_population',
    # Phenotype and fitness
    'MembraneNode',
    'MembraneEdge',
    'MembraneGraph',
    'build_graph',
    'TransportResult',
    'EvaluatedOrganism',
    'TransportSimulator',
    'simulate_fitness',
    # Evolution
    'mutate',
    'crossover',
    'breed',
    'EvolutionState',
    'PopulationKind',
    'EvolutionController',
    'TransportConfig',
    'EvolutionConfig',
    'create_config',
    'EvolutionPersistence',
    'save_evolution',
    'load_evolution',
]
