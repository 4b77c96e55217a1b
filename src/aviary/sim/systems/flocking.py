from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from pygame.math import Vector3

from ..core.agent import Agent
from ..core.genetics import Genetics, breed
from ..utils.math3d import clamp_components, safe_normalize, zero
from .kinematics import steer_towards

if TYPE_CHECKING:
    from ...config import AttractionConfig, FlockingConfig
    from ...rng import DeterministicRng


@dataclass(slots=True)
class SteeringOutcome:
    """What one agent's force pass wants to change.

    Held back until every agent has been evaluated so that the force phase only
    ever reads the start-of-tick state of its neighbours.
    """

    force: Vector3 = field(default_factory=zero)
    impulse: Vector3 = field(default_factory=zero)
    damping: float = 1.0
    genetics: Genetics | None = None
    breedings: int = 0


def _steer_along(agent: Agent, direction: Vector3) -> Vector3:
    heading = safe_normalize(direction)
    if heading.length_squared() == 0.0:
        return zero()
    genetics = agent.genetics
    return clamp_components(heading * genetics.max_speed - agent.velocity, genetics.max_force)


def separate(agent: Agent, neighbors: Sequence[Agent], desired_separation: float = 2.0) -> Vector3:
    sum_x = 0.0
    sum_y = 0.0
    sum_z = 0.0
    count = 0
    position = agent.position
    for other in neighbors:
        dx = position.x - other.position.x
        dy = position.y - other.position.y
        dz = position.z - other.position.z
        distance = math.sqrt(dx * dx + dy * dy + dz * dz)
        if distance <= 0.0 or distance >= desired_separation:
            continue
        # Unit vector away from the neighbour, weighted by 1 / distance.
        inv = 1.0 / (distance * distance)
        sum_x += dx * inv
        sum_y += dy * inv
        sum_z += dz * inv
        count += 1
    if count == 0:
        return zero()
    inv_count = 1.0 / count
    return _steer_along(agent, Vector3(sum_x * inv_count, sum_y * inv_count, sum_z * inv_count))


def align(agent: Agent, neighbors: Sequence[Agent], neighbor_dist: float = 5.0) -> Vector3:
    total = zero()
    count = 0
    for other in neighbors:
        distance = agent.position.distance_to(other.position)
        if 0.0 < distance < neighbor_dist:
            total += other.velocity
            count += 1
    if count == 0:
        return zero()
    return _steer_along(agent, total / count)


def cohere(agent: Agent, neighbors: Sequence[Agent], neighbor_dist: float = 1.0) -> Vector3:
    total = zero()
    count = 0
    for other in neighbors:
        distance = agent.position.distance_to(other.position)
        if 0.0 < distance < neighbor_dist:
            total += other.position
            count += 1
    if count == 0:
        return zero()
    return steer_towards(agent, total / count)


def collision_repulsion(agent: Agent, neighbors: Sequence[Agent]) -> Vector3:
    radius = agent.genetics.size
    repulsion = zero()
    for other in neighbors:
        offset = agent.position - other.position
        distance = offset.length()
        if 0.0 < distance < radius:
            repulsion += offset / (distance * distance)
    return repulsion


def flock(agent: Agent, neighbors: Sequence[Agent], config: FlockingConfig) -> Vector3:
    separation = separate(agent, neighbors, config.desired_separation)
    alignment = align(agent, neighbors, config.alignment_distance)
    cohesion = cohere(agent, neighbors, config.cohesion_distance)
    return (
        separation * config.separation_weight
        + alignment * config.alignment_weight
        + cohesion * config.cohesion_weight
    )


def centroid(neighbors: Sequence[Agent]) -> Vector3 | None:
    if not neighbors:
        return None
    total = zero()
    for other in neighbors:
        total += other.position
    return total / len(neighbors)


def attraction_impulse(agent: Agent, neighbors: Sequence[Agent], strength: float) -> Vector3:
    center = centroid(neighbors)
    if center is None:
        return zero()
    return safe_normalize(center - agent.position) * strength


def breed_with_neighbors(
    agent: Agent,
    neighbors: Sequence[Agent],
    probability: float,
    rng: DeterministicRng,
) -> tuple[Genetics | None, int]:
    genetics = agent.genetics
    breedings = 0
    for other in neighbors:
        if rng.next_float() < probability:
            genetics = breed(genetics, other.genetics)
            breedings += 1
    if breedings == 0:
        return None, 0
    return genetics, breedings


def compute_steering(
    agent: Agent,
    neighbors: Sequence[Agent],
    flocking: FlockingConfig,
    attraction: AttractionConfig,
    attraction_mode: bool,
    rng: DeterministicRng,
) -> SteeringOutcome:
    outcome = SteeringOutcome()
    if attraction_mode:
        # Attraction replaces alignment and cohesion; separation still applies.
        outcome.impulse = attraction_impulse(agent, neighbors, attraction.force)
        if neighbors:
            outcome.damping = attraction.damping
        outcome.force += separate(agent, neighbors, flocking.desired_separation)
        outcome.genetics, outcome.breedings = breed_with_neighbors(
            agent, neighbors, attraction.breeding_probability, rng
        )
    else:
        outcome.force += flock(agent, neighbors, flocking)
    if flocking.collision_repulsion:
        outcome.force += collision_repulsion(agent, neighbors)
    return outcome
