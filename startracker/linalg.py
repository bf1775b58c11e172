"""Small fixed-size vector and matrix helpers built on numpy."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np

ArrayLike = Sequence[float] | np.ndarray


def _as_vector(v: ArrayLike) -> np.ndarray:
    return np.asarray(v, dtype=float)


def cross(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    """Cross product of two 3-vectors."""
    a = _as_vector(a)
    b = _as_vector(b)
    return np.array(
        [
            a[1] * b[2] - a[2] * b[1],
            a[2] * b[0] - a[0] * b[2],
            a[0] * b[1] - a[1] * b[0],
        ]
    )


def rotation_matrix(pivot: ArrayLike, angle: float) -> np.ndarray:
    """Matrix rotating by ``angle`` radians about the unit axis ``pivot``."""
    x, y, z = _as_vector(pivot)
    s = math.sin(angle)
    c = math.cos(angle)
    t = 1.0 - c
    return np.array(
        [
            [x * x * t + c, x * y * t - z * s, x * z * t + y * s],
            [x * y * t + z * s, y * y * t + c, y * z * t - x * s],
            [x * z * t - y * s, y * z * t + x * s, z * z * t + c],
        ]
    )


def dist_sq(a: ArrayLike, b: ArrayLike) -> float:
    """Squared Euclidean distance between two vectors."""
    delta = _as_vector(a) - _as_vector(b)
    return float(delta @ delta)


def scale_vec(v: ArrayLike, s: float) -> np.ndarray:
    """Vector multiplied by a scalar."""
    return _as_vector(v) * s


def normalize(v: ArrayLike) -> np.ndarray:
    """Unit vector pointing the same way as ``v``."""
    v = _as_vector(v)
    length = math.sqrt(float(v @ v))
    if length == 0.0:
        raise ValueError("cannot normalize a zero vector")
    return scale_vec(v, 1.0 / length)


def clamp_vector(v: ArrayLike, lo: ArrayLike, hi: ArrayLike) -> np.ndarray:
    """Map each component from the range [lo, hi] onto [0, 1]."""
    v = _as_vector(v)
    lo = _as_vector(lo)
    hi = _as_vector(hi)
    return (v - lo) / (hi - lo)


def unit_vec_arc_length(a: ArrayLike, b: ArrayLike) -> float:
    """Angle in radians between two unit vectors."""
    dot = float(_as_vector(a) @ _as_vector(b))
    return math.acos(max(-1.0, min(1.0, dot)))


def solve_system_of_equations(m: ArrayLike, augment: ArrayLike) -> np.ndarray:
    """Solve ``m @ x = augment`` by Gaussian elimination without pivoting."""
    m = np.array(m, dtype=float)
    augment = np.array(augment, dtype=float)
    size = augment.shape[0]
    if m.shape != (size, size):
        raise ValueError("matrix must be square and match the augment vector")

    for i in range(size):
        if m[i, i] == 0.0:
            raise ValueError("system has a zero pivot")
        for j in range(i + 1, size):
            factor = -m[j, i] / m[i, i]
            m[j, i + 1 :] += factor * m[i, i + 1 :]
            augment[j] += factor * augment[i]

    solution = np.zeros(size)
    for i in reversed(range(size)):
        remainder = augment[i] - float(m[i, i + 1 :] @ solution[i + 1 :])
        solution[i] = remainder / m[i, i]
    return solution


def _format_entry(value: float | int, integral: bool) -> str:
    return str(int(value)) if integral else f"{float(value):f}"


def format_vector(v: Iterable[float] | np.ndarray) -> str:
    """Render a vector as ``[a, b, c]``."""
    arr = np.asarray(list(v) if not isinstance(v, np.ndarray) else v)
    integral = np.issubdtype(arr.dtype, np.integer)
    return "[" + ", ".join(_format_entry(x, integral) for x in arr) + "]"


def format_matrix(m: ArrayLike) -> str:
    """Render a matrix with box-drawing brackets, one row per line."""
    rows = np.asarray(m, dtype=float)
    if rows.ndim != 2:
        raise ValueError("matrix must be two-dimensional")
    last = rows.shape[0] - 1
    lines = []
    for i, row in enumerate(rows):
        if i == 0:
            opening, closing = "\u250c", "\u2510"
        elif i == last:
            opening, closing = "\u2514", "\u2518"
        else:
            opening, closing = "\u2502", "\u2502"
        body = "\t".join(f"{float(x):f}" for x in row)
        lines.append(f"{opening}{body}{closing}\n")
    return "".join(lines)