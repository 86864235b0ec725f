"""
Engine Configuration

All tunable constants of the transport simulation and of the evolutionary
loop live here. Use create_config(**overrides) to change any parameter by
name without building the nested dataclasses by hand.
"""

from dataclasses import dataclass, field, fields, replace


@dataclass
class TransportConfig:
    """
    Parameters of the gradient/ATP transport simulation.

    Defaults are the canonical rule set: 120 steps, conductance
    porosity * (0.2 + 0.6 * weight), fitness floor 0.1.
    """
    # ==========================================================================
    # SIMULATION FRAME
    # ==========================================================================
    steps: int = 120
    reference_scale: float = 36.0

    # ==========================================================================
    # GRADIENT (H) DYNAMICS
    # ==========================================================================
    source_injection: float = 0.9
    conductance_base: float = 0.2
    conductance_weight: float = 0.6

    # ==========================================================================
    # COHERENCE (q)
    # ==========================================================================
    coherence_slope: float = 8.0
    neighbor_weight_min: float = 0.1

    # ==========================================================================
    # SYNTHESIS AND ATP (A)
    # ==========================================================================
    base_efficiency: float = 0.25
    quantum_efficiency_gain: float = 0.7
    coherent_threshold: float = 0.5
    synthesis_fraction: float = 0.2
    atp_diffusion: float = 0.04
    sink_capacity: float = 0.6
    sink_fraction: float = 0.12

    # ==========================================================================
    # FITNESS WEIGHTS
    # ==========================================================================
    delivered_weight: float = 2.0
    perimeter_cost: float = 0.008
    leak_cost: float = 0.08
    fold_bonus: float = 2.5
    chord_bonus: float = 0.12
    chord_cap_fraction: float = 0.5
    coherence_cost: float = 4.0
    coherence_exponent: float = 2.2
    uniformity_penalty: float = 1.5
    uniformity_variance: float = 0.01
    fitness_floor: float = 0.1


@dataclass
class EvolutionConfig:
    """
    Parameters of the generational loop.

    One population of population_size genomes is kept per transport mode.
    """
    # ==========================================================================
    # POPULATION
    # ==========================================================================
    population_size: int = 16
    elite_count: int = 2
    parent_pool_size: int = 8
    mutation_rate: float = 0.3

    # ==========================================================================
    # REPORTING
    # ==========================================================================
    history_limit: int = 50
    snapshot_size: int = 9
    verbose: bool = False

    # ==========================================================================
    # DRIVER
    # ==========================================================================
    tick_interval: float = 0.4  # Seconds between generations in the terminal driver

    transport: TransportConfig = field(default_factory=TransportConfig)


def create_config(**overrides) -> EvolutionConfig:
    """
    Create an EvolutionConfig, routing each override to whichever dataclass
    owns the field.

    Example:
        config = create_config(population_size=24, steps=200, verbose=True)
    """
    transport_names = {f.name for f in fields(TransportConfig)}
    evolution_names = {f.name for f in fields(EvolutionConfig)}

    transport_overrides = {k: v for k, v in overrides.items() if k in transport_names}
    evolution_overrides = {k: v for k, v in overrides.items() if k in evolution_names}

    unknown = set(overrides) - transport_names - evolution_names
    if unknown:
        raise ValueError(f"Unknown config parameter(s): {', '.join(sorted(unknown))}")

    config = EvolutionConfig(**evolution_overrides)
    if transport_overrides:
        config.transport = replace(config.transport, **transport_overrides)
    return config


__all__ = [
    'TransportConfig',
    'EvolutionConfig',
    'create_config',
]
