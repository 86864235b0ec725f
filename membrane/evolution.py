"""
Evolution Controller - Two competing membrane populations

Holds one population evolved under classical transport and one evolved
under coherence-augmented (quantum) transport, and advances both one
generation per step().

STATES:
    IDLE    --start-->  RUNNING   (populations created and evaluated)
    RUNNING --pause-->  PAUSED
    PAUSED  --resume--> RUNNING   (no re-initialization)
    any     --reset-->  IDLE      (all population state discarded)

Each generation:
1. Evaluate and rank both populations
2. Carry the elites over unchanged
3. Fill the rest with mutate(crossover(p1, p2)), parents drawn from the top ranks
4. Record each population's best fitness

The controller never schedules itself; an external timer (or the terminal
driver) calls step().
"""

from collections import deque
from enum import Enum
from typing import Dict, List, Optional, Union

import numpy as np

from .config import EvolutionConfig
from .factory import create_population, rand_int
from .genome import Genome
from .graph import MembraneGraph, build_graph
from .operators import crossover, mutate
from .transport import EvaluatedOrganism, TransportSimulator


class EvolutionState(Enum):
    """Lifecycle of the controller."""
    IDLE = "idle"          # No populations allocated
    RUNNING = "running"    # Timer active, generations advancing
    PAUSED = "paused"      # Populations retained, timer stopped


class PopulationKind(Enum):
    """Which transport model a population is evolved under."""
    CLASSICAL = "classical"
    QUANTUM = "quantum"

    @property
    def use_quantum(self) -> bool:
        return self is PopulationKind.QUANTUM

    @classmethod
    def parse(cls, which: Union[str, 'PopulationKind']) -> 'PopulationKind':
        if isinstance(which, cls):
            return which
        try:
            return cls(str(which).lower())
        except ValueError:
            raise ValueError(f"Unknown population: {which!r} (expected 'classical' or 'quantum')") from None


class EvolutionController:
    """
    Runs classical and quantum membrane evolution side by side.

    USAGE:
        controller = EvolutionController(seed=42)
        controller.start()
        for _ in range(100):
            controller.step()
        best = controller.get_population_snapshot('quantum')[0]
        history = controller.get_fitness_history()
    """

    def __init__(self, config: Optional[EvolutionConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 seed: Optional[int] = None):
        self.config = config or EvolutionConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.simulator = TransportSimulator(self.config.transport)

        self._state = EvolutionState.IDLE
        self._generation = 0
        self._populations: Dict[PopulationKind, List[Genome]] = {}
        self._ranked: Dict[PopulationKind, List[EvaluatedOrganism]] = {}
        self._history: Dict[PopulationKind, deque] = self._empty_history()

    def _empty_history(self) -> Dict[PopulationKind, deque]:
        return {kind: deque(maxlen=self.config.history_limit) for kind in PopulationKind}

    def _log(self, message: str):
        if self.config.verbose:
            print(f"[Evolution] {message}")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> EvolutionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._state == EvolutionState.RUNNING

    @property
    def is_initialized(self) -> bool:
        return bool(self._populations)

    def get_population(self, which: Union[str, PopulationKind]) -> List[Genome]:
        """Genomes of the current generation (not yet evaluated)."""
        return list(self._populations.get(PopulationKind.parse(which), []))

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def start(self):
        """Start (or resume) evolution; populations are created on first start."""
        if self._state == EvolutionState.RUNNING:
            return
        if not self.is_initialized:
            self._initialize()
        self._state = EvolutionState.RUNNING
        self._log(f"Running at generation {self._generation}")

    def resume(self):
        """Resume a paused run."""
        if self._state == EvolutionState.PAUSED:
            self.start()

    def pause(self):
        """Stop advancing; populations are kept."""
        if self._state == EvolutionState.RUNNING:
            self._state = EvolutionState.PAUSED
            self._log(f"Paused at generation {self._generation}")

    def reset(self):
        """Discard all population state and return to IDLE."""
        self._state = EvolutionState.IDLE
        self._generation = 0
        self._populations = {}
        self._ranked = {}
        self._history = self._empty_history()
        self._log("Reset")

    def restore(self, populations: Dict[PopulationKind, List[Genome]],
                generation: int = 0,
                history: Optional[Dict[PopulationKind, List[float]]] = None):
        """
        Install existing populations (e.g. loaded from disk) and pause.

        Both populations are re-evaluated so snapshots are available at once.
        """
        self._populations = {kind: [g.copy() for g in populations[kind]] for kind in PopulationKind}
        self._ranked = {
            kind: self.simulator.rank(self._populations[kind], kind.use_quantum)
            for kind in PopulationKind
        }
        self._generation = generation
        self._history = self._empty_history()
        for kind in PopulationKind:
            self._history[kind].extend((history or {}).get(kind, []))
        self._state = EvolutionState.PAUSED

    def _initialize(self):
        size = self.config.population_size
        for kind in PopulationKind:
            ranked = self.simulator.rank(create_population(size, self.rng), kind.use_quantum)
            self._ranked[kind] = ranked
            self._populations[kind] = [org.genome for org in ranked]
            self._history[kind].append(ranked[0].fitness)
        self._generation = 0
        self._log(f"Initialized two populations of {size} genomes")

    def step(self):
        """
        Advance both populations by exactly one generation.

        No-op while IDLE.
        """
        if not self.is_initialized:
            return

        next_populations = {}
        next_ranked = {}
        for kind in PopulationKind:
            ranked = self.simulator.rank(self._populations[kind], kind.use_quantum)
            next_ranked[kind] = ranked
            next_populations[kind] = self._reproduce(ranked, len(self._populations[kind]))

        # Swap in complete generations only
        self._ranked = next_ranked
        self._populations = next_populations
        self._generation += 1
        for kind in PopulationKind:
            self._history[kind].append(next_ranked[kind][0].fitness)

        self._log(
            f"Generation {self._generation}: "
            f"classical best={next_ranked[PopulationKind.CLASSICAL][0].fitness:.2f} "
            f"quantum best={next_ranked[PopulationKind.QUANTUM][0].fitness:.2f}"
        )

    def _reproduce(self, ranked: List[EvaluatedOrganism], size: int) -> List[Genome]:
        """Elites plus offspring of parents drawn from the top of the ranking."""
        elites = min(self.config.elite_count, len(ranked))
        pool = max(1, min(self.config.parent_pool_size, len(ranked)))

        next_gen = [org.genome for org in ranked[:elites]]
        while len(next_gen) < size:
            p1 = ranked[rand_int(self.rng, 0, pool - 1)].genome
            p2 = ranked[rand_int(self.rng, 0, pool - 1)].genome
            child = mutate(crossover(p1, p2, self.rng), self.rng, self.config.mutation_rate)
            next_gen.append(child)
        return next_gen

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_population_snapshot(self, which: Union[str, PopulationKind]) -> List[EvaluatedOrganism]:
        """Top evaluated organisms of the last ranking, best first."""
        ranked = self._ranked.get(PopulationKind.parse(which), [])
        return list(ranked[:self.config.snapshot_size])

    def get_fitness_history(self) -> Dict[str, List[float]]:
        """Best fitness per generation for both populations, oldest first."""
        return {kind.value: list(self._history[kind]) for kind in PopulationKind}

    def build_graph(self, genome: Genome, scale: float) -> MembraneGraph:
        """Graph of a genome at any scale, identical to what fitness used."""
        return build_graph(genome, scale)

    def get_stats(self) -> Dict:
        """Summary of the current state for status displays."""
        stats = {
            'state': self._state.value,
            'generation': self._generation,
        }
        for kind in PopulationKind:
            ranked = self._ranked.get(kind, [])
            if not ranked:
                stats[kind.value] = {}
                continue
            best = ranked[0]
            stats[kind.value] = {
                'size': len(self._populations.get(kind, [])),
                'best_fitness': best.fitness,
                'mean_fitness': float(np.mean([org.fitness for org in ranked])),
                'best_delivered': best.delivered,
                'best_coherence': best.coherence,
                'mean_coherence': float(np.mean([org.coherence for org in ranked])),
                'best_node_count': best.node_count,
                'best_chord_count': best.chord_count,
            }
        return stats

    def __repr__(self) -> str:
        return f"EvolutionController(state={self._state.value}, generation={self._generation})"


__all__ = [
    'EvolutionState',
    'PopulationKind',
    'EvolutionController',
]
