from __future__ import annotations

from typing import TYPE_CHECKING

from pygame.math import Vector3

from ..core.agent import Agent
from ..utils.math3d import clamp_components, clamp_length, safe_normalize, zero

if TYPE_CHECKING:
    from ...config import SeekConfig
    from ...rng import DeterministicRng
    from ..types.bounds import Bounds


def apply_force(agent: Agent, force: Vector3) -> None:
    agent.acceleration += force


def reset_acceleration(agent: Agent) -> None:
    agent.acceleration.update(0.0, 0.0, 0.0)


def random_velocity(rng: DeterministicRng, max_speed: float) -> Vector3:
    half = max_speed * 0.5
    return Vector3(
        rng.next_float() * max_speed - half,
        rng.next_float() * max_speed - half,
        rng.next_float() * max_speed - half,
    )


def steer_towards(agent: Agent, target: Vector3) -> Vector3:
    desired = safe_normalize(target - agent.position)
    if desired.length_squared() == 0.0:
        return zero()
    genetics = agent.genetics
    steer = desired * genetics.max_speed - agent.velocity
    return clamp_components(steer, genetics.max_force)


def steer_away(agent: Agent, threat: Vector3) -> Vector3:
    desired = safe_normalize(agent.position - threat)
    if desired.length_squared() == 0.0:
        return zero()
    genetics = agent.genetics
    steer = desired * genetics.max_speed - agent.velocity
    return clamp_components(steer, genetics.max_force)


def deceleration_distance(seek: SeekConfig) -> float:
    return max(seek.deceleration_distance, seek.min_deceleration_distance)


def arrival_speed_limit(agent: Agent, seek: SeekConfig) -> float:
    """Speed bound for an agent closing on its target.

    Inside the deceleration radius the bound eases in cubically,
    ``max_speed * (distance / deceleration_distance) ** 3``, clamped to
    ``[seek.min_arrival_speed, max_force]`` so the final approach is no faster
    than one tick's worth of steering. Also refreshes ``reached_target``.
    """
    max_speed = agent.genetics.max_speed
    if not _update_reached_target(agent, seek):
        return max_speed
    slow_radius = deceleration_distance(seek)
    distance = agent.position.distance_to(agent.target)
    eased = max_speed * (distance / slow_radius) ** 3
    floor = min(seek.min_arrival_speed, max_speed)
    return max(floor, min(agent.genetics.max_force, eased))


def _update_reached_target(agent: Agent, seek: SeekConfig) -> bool:
    if not agent.seeking or agent.target is None:
        return False
    agent.reached_target = agent.position.distance_to(agent.target) < deceleration_distance(seek)
    return agent.reached_target


def integrate(agent: Agent, dt: float, acceleration_magnitude: float, seek: SeekConfig) -> None:
    accel = agent.acceleration
    if acceleration_magnitude > 0.0:
        accel = safe_normalize(accel) * acceleration_magnitude
    agent.velocity = clamp_length(agent.velocity + accel, arrival_speed_limit(agent, seek))
    agent.position += agent.velocity * dt
    # Report arrival against where the agent ends the tick.
    _update_reached_target(agent, seek)
    reset_acceleration(agent)


def wrap_around(agent: Agent, bounds: Bounds) -> bool:
    """Teleport out-of-range coordinates onto the opposite face."""
    position = agent.position
    low = bounds.min
    high = bounds.max
    wrapped = False
    for axis in range(3):
        value = position[axis]
        if value < low[axis]:
            position[axis] = high[axis]
            wrapped = True
        elif value > high[axis]:
            position[axis] = low[axis]
            wrapped = True
    return wrapped


def containment_force(agent: Agent, bounds: Bounds, margin: float, force: float) -> Vector3:
    position = agent.position
    low = bounds.min
    high = bounds.max
    near_face = False
    for axis in range(3):
        value = position[axis]
        if value < low[axis] + margin or value > high[axis] - margin:
            near_face = True
            break
    if not near_face:
        return zero()
    desired = safe_normalize(position - bounds.center)
    if desired.length_squared() == 0.0:
        return zero()
    steer = desired * agent.genetics.max_speed - agent.velocity
    return clamp_components(steer, force)
