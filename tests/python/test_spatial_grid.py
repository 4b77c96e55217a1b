from __future__ import annotations

import random

import pytest
from pygame.math import Vector3

from aviary.sim.core.agent import Agent
from aviary.sim.core.genetics import Genetics
from aviary.sim.core.spatial_grid import SpatialGrid

_GENETICS = Genetics(
    size=1.0,
    max_speed=2.0,
    max_force=0.2,
    perception_radius=10.0,
    hue=0.25,
    reproduction_probability=0.1,
)


def _agent(agent_id: int, x: float, y: float, z: float) -> Agent:
    return Agent(id=agent_id, position=Vector3(x, y, z), velocity=Vector3(), genetics=_GENETICS)


def _brute_force(agents: list[Agent], center: Vector3, radius: float) -> list[int]:
    radius_sq = radius * radius
    return sorted(
        a.id
        for a in agents
        if (a.position.x - center.x) ** 2 + (a.position.y - center.y) ** 2 + (a.position.z - center.z) ** 2
        <= radius_sq
    )


def test_neighbor_query_matches_bruteforce():
    rng = random.Random(11)
    grid = SpatialGrid(cell_size=3.0)
    agents = [
        _agent(i, rng.uniform(-20, 20), rng.uniform(-20, 20), rng.uniform(-20, 20)) for i in range(400)
    ]
    for agent in agents:
        grid.insert(agent)

    for _ in range(50):
        center = Vector3(rng.uniform(-25, 25), rng.uniform(-25, 25), rng.uniform(-25, 25))
        radius = rng.uniform(0.0, 12.0)
        found = sorted(a.id for a in grid.query(center, radius))
        assert found == _brute_force(agents, center, radius)


def test_large_radius_walks_occupied_cells():
    grid = SpatialGrid(cell_size=1.0)
    agents = [_agent(0, 0.5, 0.5, 0.5), _agent(1, 40.0, -40.0, 10.0), _agent(2, 90.0, 90.0, 90.0)]
    for agent in agents:
        grid.insert(agent)

    found = sorted(a.id for a in grid.query(Vector3(), 60.0))

    assert found == _brute_force(agents, Vector3(), 60.0) == [0, 1]


def test_query_includes_agents_exactly_on_radius():
    grid = SpatialGrid(cell_size=2.0)
    edge = _agent(0, 3.0, 0.0, 0.0)
    grid.insert(edge)

    assert grid.query(Vector3(), 3.0) == [edge]
    assert grid.query(Vector3(), 2.999) == []


def test_zero_radius_returns_coincident_agents_only():
    grid = SpatialGrid(cell_size=2.0)
    here = _agent(0, 1.0, 1.0, 1.0)
    near = _agent(1, 1.0, 1.0, 1.1)
    grid.insert(here)
    grid.insert(near)

    assert grid.query(Vector3(1.0, 1.0, 1.0), 0.0) == [here]


def test_negative_coordinates_use_floor_cells():
    grid = SpatialGrid(cell_size=2.0)

    assert grid.cell_key(Vector3(-0.5, 0.5, -2.0)) == (-1, 0, -1)
    assert grid.cell_key(Vector3(-2.5, 3.9, 4.0)) == (-2, 1, 2)


def test_remove_hides_agent_from_queries():
    grid = SpatialGrid(cell_size=2.5)
    agents = [_agent(i, float(i), 0.0, 0.0) for i in range(5)]
    for agent in agents:
        grid.insert(agent)

    assert grid.remove(agents[2]) is True
    assert len(grid) == 4

    found = [a.id for a in grid.query(Vector3(2.0, 0.0, 0.0), 100.0)]
    assert 2 not in found
    assert sorted(found) == [0, 1, 3, 4]


def test_remove_missing_agent_is_noop():
    grid = SpatialGrid(cell_size=2.0)
    kept = _agent(0, 0.0, 0.0, 0.0)
    stranger = _agent(1, 0.5, 0.5, 0.5)
    grid.insert(kept)

    assert grid.remove(stranger) is False
    assert grid.query(Vector3(), 1.0) == [kept]


def test_clear_empties_index_and_allows_reinsert():
    grid = SpatialGrid(cell_size=2.0)
    agent = _agent(0, 1.0, 1.0, 1.0)
    grid.insert(agent)
    grid.clear()

    assert len(grid) == 0
    assert grid.query(Vector3(1.0, 1.0, 1.0), 5.0) == []
    assert grid.occupancy() == {}

    grid.insert(agent)
    assert grid.query(Vector3(1.0, 1.0, 1.0), 5.0) == [agent]


@pytest.mark.parametrize("cell_size", [0.0, -1.0, float("inf"), float("nan")])
def test_invalid_cell_size_rejected(cell_size):
    with pytest.raises(ValueError):
        SpatialGrid(cell_size)
