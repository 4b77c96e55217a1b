from __future__ import annotations

import math

from pygame.math import Vector3

_EPSILON_SQ = 1e-12


def zero() -> Vector3:
    return Vector3(0.0, 0.0, 0.0)


def lift(point: tuple[float, ...] | Vector3) -> Vector3:
    """Return a Vector3 copy of a 2D or 3D point; 2D points sit on z = 0."""
    if isinstance(point, Vector3):
        return Vector3(point)
    if len(point) == 2:
        return Vector3(float(point[0]), float(point[1]), 0.0)
    if len(point) == 3:
        return Vector3(float(point[0]), float(point[1]), float(point[2]))
    raise ValueError(f"Expected a 2D or 3D point, got {len(point)} components")


def safe_normalize(vector: Vector3) -> Vector3:
    magnitude_sq = vector.length_squared()
    if magnitude_sq < _EPSILON_SQ:
        return zero()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector3(vector.x * inv, vector.y * inv, vector.z * inv)


def clamp_length(vector: Vector3, max_length: float) -> Vector3:
    if max_length <= 0.0:
        return zero()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return Vector3(vector)
    if magnitude_sq < _EPSILON_SQ:
        return zero()
    scale = max_length / math.sqrt(magnitude_sq)
    return Vector3(vector.x * scale, vector.y * scale, vector.z * scale)


def clamp_components(vector: Vector3, limit: float) -> Vector3:
    # Per-axis clamp to [-limit, limit], the way steering forces are bounded.
    low = -abs(limit)
    high = abs(limit)
    return Vector3(
        _clamp_value(vector.x, low, high),
        _clamp_value(vector.y, low, high),
        _clamp_value(vector.z, low, high),
    )


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def as_tuple(vector: Vector3) -> tuple[float, float, float]:
    return (vector.x, vector.y, vector.z)
