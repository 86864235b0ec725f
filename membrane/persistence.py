"""
Evolution Persistence Module

Saves and restores an evolutionary run: both genome populations, the
generation counter and the fitness history. Files are plain JSON so runs
can be inspected or diffed by hand.

Existing saves are rotated into numbered backups before being overwritten.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .config import EvolutionConfig
from .evolution import EvolutionController, PopulationKind
from .genome import Genome


class EvolutionPersistence:
    """
    Handles saving and loading of evolution runs.

    Features:
    - JSON save files (genomes use Genome.to_dict)
    - Backup rotation with a configurable depth
    - Version check on load
    """

    VERSION = "1.0"
    SUFFIX = ".membranes.json"

    def __init__(self, save_directory: Union[str, Path] = "./evolution_saves",
                 max_backups: int = 3, verbose: bool = False):
        self.save_directory = Path(save_directory)
        self.max_backups = max_backups
        self.verbose = verbose

    def _log(self, message: str):
        if self.verbose:
            print(f"[Persistence] {message}")

    def save(self, controller: EvolutionController,
             filepath: Optional[Union[str, Path]] = None,
             create_backup: bool = True) -> Path:
        """
        Save a controller's populations and history.

        Args:
            controller: Controller to save (must have been started)
            filepath: Target file, else a timestamped file in save_directory
            create_backup: Rotate an existing file into a backup first

        Returns:
            Path to saved file
        """
        if not controller.is_initialized:
            raise ValueError("Cannot save an evolution run that was never started")

        if filepath is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filepath = self.save_directory / f"run_{timestamp}{self.SUFFIX}"
        else:
            filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        if create_backup and filepath.exists():
            self._rotate_backups(filepath)

        history = controller.get_fitness_history()
        save_data = {
            'version': self.VERSION,
            'saved_at': datetime.now().isoformat(),
            'generation': controller.generation,
            'populations': {
                kind.value: [g.to_dict() for g in controller.get_population(kind)]
                for kind in PopulationKind
            },
            'history': history,
        }

        with open(filepath, 'w') as f:
            json.dump(save_data, f, indent=2)

        self._log(f"Saved generation {controller.generation} to {filepath}")
        return filepath

    def load(self, filepath: Union[str, Path],
             config: Optional[EvolutionConfig] = None,
             rng: Optional[np.random.Generator] = None) -> EvolutionController:
        """
        Load a saved run into a new, paused controller.

        Args:
            filepath: Path to the save file
            config: Configuration for the new controller
            rng: Random source for the new controller

        Returns:
            EvolutionController in the PAUSED state
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Save file not found: {filepath}")

        with open(filepath, 'r') as f:
            save_data = json.load(f)

        version = save_data.get('version')
        if version != self.VERSION:
            raise ValueError(f"Incompatible save version: {version}")

        populations = {
            kind: [Genome.from_dict(d) for d in save_data['populations'][kind.value]]
            for kind in PopulationKind
        }
        history = {
            kind: [float(v) for v in save_data.get('history', {}).get(kind.value, [])]
            for kind in PopulationKind
        }

        controller = EvolutionController(config=config, rng=rng)
        controller.restore(populations, generation=int(save_data.get('generation', 0)), history=history)
        self._log(f"Loaded generation {controller.generation} from {filepath}")
        return controller

    def _rotate_backups(self, filepath: Path):
        """Shift file.backup1 -> file.backup2 ..., dropping the oldest."""
        oldest = filepath.with_name(f"{filepath.name}.backup{self.max_backups}")
        if oldest.exists():
            oldest.unlink()
        for i in range(self.max_backups - 1, 0, -1):
            old_backup = filepath.with_name(f"{filepath.name}.backup{i}")
            if old_backup.exists():
                old_backup.rename(filepath.with_name(f"{filepath.name}.backup{i + 1}"))
        if self.max_backups > 0:
            filepath.rename(filepath.with_name(f"{filepath.name}.backup1"))

    def list_saves(self):
        """Saved runs in save_directory, newest first."""
        if not self.save_directory.exists():
            return []
        return sorted(self.save_directory.glob(f"*{self.SUFFIX}"),
                      key=lambda p: p.stat().st_mtime, reverse=True)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def save_evolution(controller: EvolutionController, filepath: Union[str, Path]) -> Path:
    """Save a run to filepath."""
    return EvolutionPersistence(Path(filepath).parent, verbose=controller.config.verbose).save(controller, filepath)


def load_evolution(filepath: Union[str, Path],
                   config: Optional[EvolutionConfig] = None,
                   rng: Optional[np.random.Generator] = None) -> EvolutionController:
    """Load a run from filepath into a paused controller."""
    return EvolutionPersistence(Path(filepath).parent).load(filepath, config=config, rng=rng)


__all__ = [
    'EvolutionPersistence',
    'save_evolution',
    'load_evolution',
]
