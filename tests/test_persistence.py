"""
Tests for saving and loading evolution runs
===========================================
"""

import json

import pytest

from membrane.evolution import EvolutionController, EvolutionState, PopulationKind
from membrane.persistence import EvolutionPersistence, load_evolution, save_evolution


@pytest.fixture
def evolved(small_config):
    controller = EvolutionController(config=small_config, seed=6)
    controller.start()
    for _ in range(3):
        controller.step()
    return controller


# ==========================================
# ROUND TRIP
# ==========================================

def test_round_trip(tmp_path, evolved, small_config):
    path = save_evolution(evolved, tmp_path / "run.membranes.json")
    assert path.exists()

    loaded = load_evolution(path, config=small_config)
    assert loaded.state == EvolutionState.PAUSED
    assert loaded.generation == 3
    assert loaded.get_fitness_history() == evolved.get_fitness_history()
    for kind in PopulationKind:
        assert [g.id for g in loaded.get_population(kind)] == [g.id for g in evolved.get_population(kind)]
        assert loaded.get_population_snapshot(kind)


def test_loaded_run_continues(tmp_path, evolved, small_config):
    path = save_evolution(evolved, tmp_path / "run.membranes.json")
    loaded = load_evolution(path, config=small_config)

    loaded.resume()
    assert loaded.state == EvolutionState.RUNNING
    loaded.step()
    assert loaded.generation == 4
    assert len(loaded.get_fitness_history()['classical']) == 5


def test_save_file_is_plain_json(tmp_path, evolved):
    path = save_evolution(evolved, tmp_path / "run.membranes.json")
    data = json.loads(path.read_text())

    assert data['version'] == EvolutionPersistence.VERSION
    assert data['generation'] == 3
    assert set(data['populations']) == {'classical', 'quantum'}
    assert data['populations']['quantum'][0]['nodes'][0]['type'] in ('membrane', 'etc', 'synthase')


def test_default_path_goes_to_save_directory(tmp_path, evolved):
    persistence = EvolutionPersistence(tmp_path / "saves")
    path = persistence.save(evolved)

    assert path.parent == tmp_path / "saves"
    assert path.name.endswith(EvolutionPersistence.SUFFIX)
    assert persistence.list_saves() == [path]


# ==========================================
# BACKUPS
# ==========================================

def test_backups_rotate(tmp_path, evolved):
    persistence = EvolutionPersistence(tmp_path, max_backups=2)
    path = tmp_path / "run.membranes.json"
    for _ in range(4):
        persistence.save(evolved, path)

    assert path.exists()
    assert (tmp_path / "run.membranes.json.backup1").exists()
    assert (tmp_path / "run.membranes.json.backup2").exists()
    assert not (tmp_path / "run.membranes.json.backup3").exists()


# ==========================================
# ERRORS
# ==========================================

def test_save_requires_started_run(tmp_path, small_config):
    controller = EvolutionController(config=small_config, seed=1)
    with pytest.raises(ValueError):
        save_evolution(controller, tmp_path / "never.membranes.json")


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_evolution(tmp_path / "missing.membranes.json")


def test_load_rejects_unknown_version(tmp_path, evolved):
    path = save_evolution(evolved, tmp_path / "run.membranes.json")
    data = json.loads(path.read_text())
    data['version'] = "0.1"
    path.write_text(json.dumps(data))

    with pytest.raises(ValueError, match="version"):
        load_evolution(path)


def test_verbose_persistence_logs(tmp_path, evolved, capsys):
    persistence = EvolutionPersistence(tmp_path, verbose=True)
    path = persistence.save(evolved, tmp_path / "run.membranes.json")
    persistence.load(path)
    out = capsys.readouterr().out
    assert "[Persistence] Saved generation 3" in out
    assert "[Persistence] Loaded generation 3" in out
