import csv
import json

import pytest

from aviary.app.headless import _BASIC_HEADER, _DETAILED_HEADER, build_world, run_headless
from aviary.config import AttractionConfig, SimulationConfig


def _small_config() -> SimulationConfig:
    return SimulationConfig(
        initial_population=30,
        attraction=AttractionConfig(cooldown=2.0, duration=2.0),
    )


def test_detailed_log_and_summary(tmp_path):
    log_path = tmp_path / "run.csv"
    summary_path = tmp_path / "summary.json"

    world = run_headless(
        12,
        seed=5,
        log_path=log_path,
        deterministic_log=True,
        summary_path=summary_path,
        summary_window=4,
        config=_small_config(),
    )

    with log_path.open() as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == _DETAILED_HEADER
    assert len(rows) == 13
    assert all(row[_DETAILED_HEADER.index("tick_ms")] == "0.000" for row in rows[1:])

    summary = json.loads(summary_path.read_text())
    assert summary["steps"] == 12
    assert summary["seed"] == 5
    assert summary["population"] == len(world.agents)
    assert summary["attraction_ticks"] > 0
    assert summary["tail_window"]["window"] == 4
    assert summary["tick_ms"]["max"] == 0.0


def test_basic_log_is_deterministic(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"

    run_headless(8, seed=11, log_path=first, deterministic_log=True, log_format="basic", config=_small_config())
    run_headless(8, seed=11, log_path=second, deterministic_log=True, log_format="basic", config=_small_config())

    text = first.read_text()
    assert text.splitlines()[0] == ",".join(_BASIC_HEADER)
    assert text == second.read_text()


def test_unknown_log_format_rejected(tmp_path):
    with pytest.raises(ValueError):
        run_headless(1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose", config=_small_config())


def test_seek_from_switches_mode(tmp_path):
    log_path = tmp_path / "seek.csv"

    run_headless(
        6,
        seed=2,
        log_path=log_path,
        deterministic_log=True,
        log_format="basic",
        config=_small_config(),
        formation="sphere",
        seek_from=3,
    )

    with log_path.open() as handle:
        modes = [row["mode"] for row in csv.DictReader(handle)]
    assert modes == ["flock", "flock", "flock", "seek", "seek", "seek"]


def test_sphere_formation_assigns_targets():
    world = build_world(_small_config(), "sphere")

    assert len(world.agents) == 30
    assert all(agent.target is not None for agent in world.agents)


def test_unknown_formation_rejected():
    with pytest.raises(ValueError):
        build_world(_small_config(), "spiral")


def test_seed_override_leaves_caller_config_untouched():
    config = _small_config()

    world = run_headless(2, seed=99, log_path=None, config=config)

    assert config.seed == SimulationConfig().seed
    assert world.snapshot(2).metadata.seed == 99
