from __future__ import annotations

from pygame.math import Vector3
from pytest import approx

from aviary.config import AttractionConfig, FlockingConfig
from aviary.rng import DeterministicRng
from aviary.sim.core.agent import Agent
from aviary.sim.core.genetics import Genetics
from aviary.sim.systems import flocking

_next_id = 0


def _make_agent(
    position: tuple[float, float, float] = (0.0, 0.0, 0.0),
    velocity: tuple[float, float, float] = (0.0, 0.0, 0.0),
    max_speed: float = 2.0,
    max_force: float = 10.0,
    size: float = 1.0,
    max_speed_gene: float | None = None,
) -> Agent:
    global _next_id
    _next_id += 1
    return Agent(
        id=_next_id,
        position=Vector3(position),
        velocity=Vector3(velocity),
        genetics=Genetics(
            size=size,
            max_speed=max_speed if max_speed_gene is None else max_speed_gene,
            max_force=max_force,
            perception_radius=10.0,
            hue=0.3,
            reproduction_probability=0.1,
        ),
    )


def test_rules_return_zero_for_no_neighbors():
    agent = _make_agent(velocity=(1.0, 0.0, 0.0))
    assert flocking.separate(agent, []) == Vector3()
    assert flocking.align(agent, []) == Vector3()
    assert flocking.cohere(agent, []) == Vector3()
    assert flocking.collision_repulsion(agent, []) == Vector3()
    assert flocking.flock(agent, [], FlockingConfig()) == Vector3()


def test_rules_ignore_neighbors_outside_thresholds():
    agent = _make_agent()
    far = _make_agent(position=(8.0, 0.0, 0.0), velocity=(1.0, 0.0, 0.0))
    assert flocking.separate(agent, [far], desired_separation=2.0) == Vector3()
    assert flocking.align(agent, [far], neighbor_dist=5.0) == Vector3()
    assert flocking.cohere(agent, [far], neighbor_dist=1.0) == Vector3()


def test_separation_pushes_away_from_close_neighbor():
    agent = _make_agent()
    other = _make_agent(position=(1.0, 0.0, 0.0))

    steer = flocking.separate(agent, [other], desired_separation=2.0)

    assert steer.x == approx(-2.0)
    assert steer.y == approx(0.0)


def test_separation_ignores_coincident_neighbor():
    agent = _make_agent(position=(1.0, 1.0, 1.0))
    twin = _make_agent(position=(1.0, 1.0, 1.0))
    assert flocking.separate(agent, [twin]) == Vector3()


def test_alignment_matches_average_heading():
    agent = _make_agent(velocity=(0.0, 1.0, 0.0))
    neighbors = [
        _make_agent(position=(1.0, 0.0, 0.0), velocity=(3.0, 0.0, 0.0)),
        _make_agent(position=(0.0, 1.0, 0.0), velocity=(1.0, 0.0, 0.0)),
    ]

    steer = flocking.align(agent, neighbors, neighbor_dist=5.0)

    assert steer.x == approx(2.0)
    assert steer.y == approx(-1.0)


def test_alignment_force_is_clamped():
    agent = _make_agent(max_force=0.25)
    other = _make_agent(position=(1.0, 0.0, 0.0), velocity=(0.0, 0.0, 5.0))
    steer = flocking.align(agent, [other])
    assert steer.z == approx(0.25)


def test_cohesion_seeks_centroid():
    agent = _make_agent()
    neighbors = [
        _make_agent(position=(0.5, 0.5, 0.0)),
        _make_agent(position=(0.5, -0.5, 0.0)),
    ]

    steer = flocking.cohere(agent, neighbors, neighbor_dist=1.0)

    assert steer.x == approx(2.0)
    assert steer.y == approx(0.0)


def test_collision_repulsion_is_unclamped_inverse_distance():
    agent = _make_agent(size=1.0, max_force=0.1)
    other = _make_agent(position=(0.5, 0.0, 0.0))

    repulsion = flocking.collision_repulsion(agent, [other])

    assert repulsion.x == approx(-2.0)


def test_flock_applies_weights():
    config = FlockingConfig(separation_weight=3.0, alignment_weight=0.0, cohesion_weight=0.0)
    agent = _make_agent()
    other = _make_agent(position=(1.0, 0.0, 0.0))

    force = flocking.flock(agent, [other], config)

    assert force.x == approx(-6.0)


def test_attraction_mode_pulls_damps_and_breeds():
    agent = _make_agent(velocity=(1.0, 0.0, 0.0), max_speed_gene=1.0)
    mate = _make_agent(position=(0.0, 4.0, 0.0), max_speed_gene=3.0)
    attraction = AttractionConfig(force=0.35, damping=0.95, breeding_probability=1.0)

    outcome = flocking.compute_steering(
        agent,
        [mate],
        FlockingConfig(collision_repulsion=False),
        attraction,
        attraction_mode=True,
        rng=DeterministicRng(1),
    )

    assert outcome.impulse.y == approx(0.35)
    assert outcome.impulse.x == approx(0.0)
    assert outcome.damping == approx(0.95)
    assert outcome.breedings == 1
    assert outcome.genetics is not None
    assert outcome.genetics.max_speed == approx(2.0)
    assert agent.genetics.max_speed == 1.0


def test_attraction_without_breeding_keeps_genetics():
    agent = _make_agent()
    mate = _make_agent(position=(0.0, 4.0, 0.0))

    outcome = flocking.compute_steering(
        agent,
        [mate],
        FlockingConfig(),
        AttractionConfig(breeding_probability=0.0),
        attraction_mode=True,
        rng=DeterministicRng(1),
    )

    assert outcome.genetics is None
    assert outcome.breedings == 0


def test_attraction_with_no_neighbors_is_inert():
    agent = _make_agent(velocity=(1.0, 0.0, 0.0))
    outcome = flocking.compute_steering(
        agent, [], FlockingConfig(), AttractionConfig(), attraction_mode=True, rng=DeterministicRng(1)
    )
    assert outcome.impulse == Vector3()
    assert outcome.damping == 1.0
    assert outcome.force == Vector3()


def test_normal_mode_never_breeds():
    agent = _make_agent()
    mate = _make_agent(position=(0.5, 0.0, 0.0))
    outcome = flocking.compute_steering(
        agent,
        [mate],
        FlockingConfig(),
        AttractionConfig(breeding_probability=1.0),
        attraction_mode=False,
        rng=DeterministicRng(1),
    )
    assert outcome.genetics is None
    assert outcome.impulse == Vector3()
