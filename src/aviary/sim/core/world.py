from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional

from pygame.math import Vector3

from ...config import SimulationConfig
from ...rng import DeterministicRng, derive_stream_seed
from ..systems import flocking, kinematics, metrics as metrics_system
from ..systems.attraction import AttractionCycle
from ..systems.batching import BatchCursor
from ..systems.flocking import SteeringOutcome
from ..types.bounds import Bounds
from ..types.metrics import TickMetrics
from ..types.snapshot import AgentPose, Snapshot, SnapshotMetadata, SnapshotWorld
from ..types.spawn import SpawnSpec
from ..types.tick_input import IDLE_INPUT, TickInput
from ..utils.math3d import as_tuple, lift
from .agent import Agent
from .genetics import random_genetics
from .spatial_grid import SpatialGrid

logger = logging.getLogger(__name__)

_GENETICS_RNG_SALT = 0x6E7E1C5A11E1E5ED
_BREEDING_RNG_SALT = 0xB4EED1A6F10C4A11
_JITTER_RNG_SALT = 0x71773E4D0FF5E7A2

MODE_FLOCK = "flock"
MODE_SEEK = "seek"


class World:
    """Owns the population and runs one tick at a time.

    A tick is strictly ordered: rebuild the grid, evaluate every agent's
    forces against that frozen grid, then integrate and re-index each agent.
    """

    def __init__(self, config: SimulationConfig, spawns: Optional[Iterable[SpawnSpec]] = None):
        self._config = config.validate()
        self._rng = DeterministicRng(config.seed)
        self._genetics_rng = DeterministicRng(derive_stream_seed(config.seed, _GENETICS_RNG_SALT))
        self._breeding_rng = DeterministicRng(derive_stream_seed(config.seed, _BREEDING_RNG_SALT))
        self._jitter_rng = DeterministicRng(derive_stream_seed(config.seed, _JITTER_RNG_SALT))
        self._bounds = Bounds.cube(config.boundary.half_extent)
        self._grid = SpatialGrid(config.cell_size)
        self._attraction = AttractionCycle(config.attraction)
        self._batch = BatchCursor(config.seek.batch_size)
        self._agents: List[Agent] = []
        self._outcomes: List[Optional[SteeringOutcome]] = []
        self._spawns = list(spawns) if spawns is not None else None
        self._next_id = 0
        self._seeking = False
        self._preview_pixels = False
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def bounds(self) -> Bounds:
        return self._bounds

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def attraction_mode(self) -> bool:
        return self._attraction.active

    @property
    def attraction_timer(self) -> float:
        return self._attraction.timer

    @property
    def batch_index(self) -> int:
        return self._batch.index

    @property
    def seeking(self) -> bool:
        return self._seeking

    def reset(self) -> None:
        self._agents.clear()
        self._outcomes.clear()
        self._grid.clear()
        self._rng.reset()
        self._genetics_rng.reset()
        self._breeding_rng.reset()
        self._jitter_rng.reset()
        self._attraction.reset()
        self._batch.reset()
        self._next_id = 0
        self._seeking = False
        self._preview_pixels = False
        self._metrics = None
        self._bootstrap_population()

    def toggle_attraction_mode(self) -> bool:
        return self._attraction.toggle()

    def current_batch(self) -> List[Agent]:
        return [self._agents[i] for i in self._batch.window(len(self._agents))]

    def add_agent(self, spawn: SpawnSpec) -> Agent | None:
        """Spawn an agent; returns None when it is itself culled at capacity."""
        genetics = random_genetics(self._genetics_rng, self._config.genetics)
        target = None if spawn.target is None else lift(spawn.target)
        agent = Agent(
            id=self._next_id,
            position=lift(spawn.position),
            velocity=kinematics.random_velocity(self._rng, genetics.max_speed),
            genetics=genetics,
            target=target,
            target_color=spawn.target_color,
            seeking=self._seeking and target is not None,
        )
        self._next_id += 1
        self._agents.append(agent)
        self._grid.insert(agent)
        max_population = self._config.max_population
        if max_population > 0 and len(self._agents) > max_population:
            weakest = self.weakest_agent()
            if weakest is not None:
                logger.info(
                    "population above %d, culling agent %d (fitness=%.3f)",
                    max_population,
                    weakest.id,
                    weakest.genetics.fitness(),
                )
                self.remove_agent(weakest)
                if weakest is agent:
                    return None
        return agent

    def remove_agent(self, agent: Agent) -> bool:
        for index, candidate in enumerate(self._agents):
            if candidate is agent:
                del self._agents[index]
                self._grid.remove(agent)
                return True
        return False

    def weakest_agent(self) -> Agent | None:
        if not self._agents:
            return None
        return min(self._agents, key=lambda agent: agent.genetics.fitness())

    def neighbors(self, agent: Agent, radius: float | None = None) -> List[Agent]:
        if radius is None:
            radius = agent.genetics.perception_radius
        return [other for other in self._grid.query(agent.position, radius) if other is not agent]

    def step(self, tick: int, tick_input: TickInput | None = None, dt: float | None = None) -> TickMetrics:
        start = perf_counter()
        config = self._config
        tick_input = IDLE_INPUT if tick_input is None else tick_input
        dt = config.time_step if dt is None else dt

        if tick_input.toggle_attraction:
            self._attraction.toggle()
        self._set_seeking(tick_input.seeking)
        self._preview_pixels = tick_input.preview_pixels
        mode = MODE_SEEK if self._seeking else MODE_FLOCK
        attraction_mode = self._attraction.active and not self._seeking
        batch_index = self._batch.index

        agents = self._agents
        if not agents:
            metrics = metrics_system.create_metrics(
                tick, mode, attraction_mode, 0, 0, (perf_counter() - start) * 1000.0, (0, 0.0, 0, 0), 0
            )
            self._metrics = metrics
            return metrics

        self._rebuild_grid()
        outcomes = self._outcomes
        outcomes.clear()
        outcomes.extend([None] * len(agents))
        for agent in agents:
            kinematics.reset_acceleration(agent)

        neighbor_checks = 0
        if self._seeking:
            for index in self._batch.window(len(agents)):
                agent = agents[index]
                if agent.target is not None:
                    kinematics.apply_force(agent, kinematics.steer_towards(agent, agent.target))
        else:
            for index, agent in enumerate(agents):
                neighbors = self.neighbors(agent)
                neighbor_checks += len(neighbors)
                outcomes[index] = flocking.compute_steering(
                    agent,
                    neighbors,
                    config.flocking,
                    config.attraction,
                    attraction_mode,
                    self._breeding_rng,
                )

        threat = None if tick_input.threat is None else lift(tick_input.threat)
        for agent in agents:
            self._apply_ambient_forces(agent, threat)

        breedings = 0
        speed_sum = 0.0
        reached = 0
        evading = 0
        wrap = config.boundary.wrap_around
        for agent, outcome in zip(agents, outcomes):
            self._grid.remove(agent)
            if outcome is not None:
                breedings += self._apply_outcome(agent, outcome)
            kinematics.integrate(agent, dt, config.acceleration_magnitude, config.seek)
            if wrap:
                kinematics.wrap_around(agent, self._bounds)
            self._tick_evasion(agent, dt)
            self._grid.insert(agent)
            speed_sum += agent.velocity.length()
            if agent.reached_target:
                reached += 1
            if agent.evasion.active:
                evading += 1

        if self._seeking:
            self._batch.advance(len(agents))
        self._attraction.advance(dt)

        population = len(agents)
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            tick,
            mode,
            attraction_mode,
            neighbor_checks,
            breedings,
            elapsed_ms,
            (population, speed_sum / population, reached, evading),
            batch_index,
        )
        self._metrics = metrics
        return metrics

    def poses(self, preview_pixels: bool | None = None) -> List[AgentPose]:
        if preview_pixels is None:
            preview_pixels = self._preview_pixels
        poses = []
        for agent in self._agents:
            color = agent.genetics.color
            if preview_pixels and agent.target_color is not None:
                color = agent.target_color
            poses.append(
                AgentPose(
                    id=agent.id,
                    position=as_tuple(agent.position),
                    forward=as_tuple(agent.forward()),
                    color=color,
                )
            )
        return poses

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        config = self._config
        metadata = SnapshotMetadata(
            sim_dt=config.time_step,
            tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
            seed=config.seed,
            config_version=config.config_version,
            attraction_timer=self._attraction.timer,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(
                min=as_tuple(self._bounds.min),
                max=as_tuple(self._bounds.max),
                wrap_around=config.boundary.wrap_around,
            ),
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        if self._spawns is not None:
            for spawn in self._spawns:
                self.add_agent(spawn)
        else:
            half = self._config.boundary.half_extent * 0.5
            center = self._bounds.center
            low = center - Vector3(half, half, half)
            high = center + Vector3(half, half, half)
            for _ in range(self._config.initial_population):
                self.add_agent(SpawnSpec(position=self._rng.next_in_box(low, high)))
        logger.info("bootstrapped %d agents (seed=%d)", len(self._agents), self._config.seed)

    def _rebuild_grid(self) -> None:
        self._grid.clear()
        for agent in self._agents:
            self._grid.insert(agent)

    def _set_seeking(self, seeking: bool) -> None:
        if seeking != self._seeking:
            logger.debug("switching to %s mode", MODE_SEEK if seeking else MODE_FLOCK)
        self._seeking = seeking
        for agent in self._agents:
            agent.seeking = seeking and agent.target is not None
            if not agent.seeking:
                agent.reached_target = False

    def _apply_ambient_forces(self, agent: Agent, threat: Vector3 | None) -> None:
        config = self._config
        evasion = config.evasion
        if threat is not None and agent.position.distance_to(threat) < evasion.radius:
            agent.evasion.active = True
            agent.evasion.remaining_time = evasion.duration
            agent.evasion.source = Vector3(threat)
        if agent.evasion.active and agent.evasion.source is not None:
            kinematics.apply_force(agent, kinematics.steer_away(agent, agent.evasion.source) * evasion.weight)
        boundary = config.boundary
        if not boundary.wrap_around:
            kinematics.apply_force(
                agent, kinematics.containment_force(agent, self._bounds, boundary.margin, boundary.force)
            )
        if config.jitter > 0.0:
            jitter = kinematics.random_velocity(self._jitter_rng, agent.genetics.max_speed)
            kinematics.apply_force(agent, jitter * config.jitter)

    @staticmethod
    def _apply_outcome(agent: Agent, outcome: SteeringOutcome) -> int:
        if outcome.impulse.length_squared() > 0.0 or outcome.damping != 1.0:
            agent.velocity = (agent.velocity + outcome.impulse) * outcome.damping
        if outcome.genetics is not None:
            agent.genetics = outcome.genetics
        kinematics.apply_force(agent, outcome.force)
        return outcome.breedings

    @staticmethod
    def _tick_evasion(agent: Agent, dt: float) -> None:
        evasion = agent.evasion
        if not evasion.active:
            return
        evasion.remaining_time -= dt
        if evasion.remaining_time <= 0.0:
            evasion.active = False
            evasion.remaining_time = 0.0
            evasion.source = None

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        genetics = agent.genetics
        target = agent.target
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "z": agent.position.z,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "vz": agent.velocity.z,
            "speed": agent.velocity.length(),
            "color": list(genetics.color),
            "size": genetics.size,
            "max_speed": genetics.max_speed,
            "max_force": genetics.max_force,
            "perception_radius": genetics.perception_radius,
            "reproduction_probability": genetics.reproduction_probability,
            "fitness": genetics.fitness(),
            "target": None if target is None else [target.x, target.y, target.z],
            "seeking": agent.seeking,
            "reached_target": agent.reached_target,
            "evading": agent.evasion.active,
        }

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        population = len(self._agents)
        speed = 0.0 if population == 0 else sum(agent.velocity.length() for agent in self._agents) / population
        return metrics_system.create_metrics(
            tick,
            MODE_SEEK if self._seeking else MODE_FLOCK,
            self._attraction.active,
            0,
            0,
            0.0,
            (
                population,
                speed,
                sum(1 for agent in self._agents if agent.reached_target),
                sum(1 for agent in self._agents if agent.evasion.active),
            ),
            self._batch.index,
        )
