"""Star records, star quads and the helpers that build and describe them."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .linalg import unit_vec_arc_length
from .tree import BinaryNode, find_k_nearest_neighbors
from .zorder import vec_to_z_index

PI = 3.14159265359
NAME_SIZE = 32

_MASK32 = 0xFFFFFFFF
_REDUNDANT_NEIGHBOURS = ((0, 1, 2), (1, 2, 3), (0, 2, 3), (0, 1, 3))


@dataclass(frozen=True)
class StarQuad:
    """A star and three neighbours, as six arcs scaled by the longest of them."""

    distances: tuple[float, ...] = (0.0,) * 6
    longest_arc: float = 0.0


@dataclass
class Star:
    """A catalogue star with its direction and its own star quad."""

    name: str
    right_ascension: float
    declination: float
    magnitude: float = 0.0
    dir: tuple[float, float, float] = (0.0, 0.0, 0.0)
    primary: StarQuad = field(default_factory=StarQuad)


def _mt19937_first_output(seed: int) -> int:
    state = [seed & _MASK32]
    for i in range(1, 398):
        previous = state[-1]
        state.append((1812433253 * (previous ^ (previous >> 30)) + i) & _MASK32)
    y = (state[0] & 0x80000000) | (state[1] & 0x7FFFFFFF)
    value = state[397] ^ (y >> 1) ^ (0x9908B0DF if y & 1 else 0)
    value ^= value >> 11
    value ^= (value << 7) & 0x9D2C5680
    value ^= (value << 15) & 0xEFC60000
    value ^= value >> 18
    return value & _MASK32


def random_float(seed: int) -> float:
    """A deterministic number in [0, 1] drawn from a Mersenne Twister seeded with ``seed``."""
    raw = _mt19937_first_output(seed)
    return float(np.float32(raw) / np.float32(_MASK32))


def point_on_sphere(theta: float, phi: float) -> np.ndarray:
    """Unit vector at longitude ``theta`` and latitude ``phi``."""
    return np.array(
        [
            math.cos(theta) * math.cos(phi),
            math.sin(phi),
            math.sin(theta) * math.cos(phi),
        ]
    )


def generate_random_stars(star_count: int) -> list[Star]:
    """Stars spread uniformly over the sphere, named ``Star #<n>``."""
    if star_count < 0:
        raise ValueError("star_count must not be negative")
    stars = []
    for i in range(star_count):
        ra = random_float(2 * i) * 2.0 * PI
        dec = math.asin(random_float(2 * i + 1) * 2.0 - 1.0)
        direction = tuple(float(x) for x in point_on_sphere(ra, dec))
        stars.append(
            Star(
                name=f"Star #{i}",
                right_ascension=ra,
                declination=dec,
                magnitude=0.0,
                dir=direction,
            )
        )
    return stars


def same_direction(a: Star, b: Star) -> bool:
    """True when both stars point exactly the same way."""
    return all(x == y for x, y in zip(a.dir, b.dir))


def z_index_from_star(star: Star) -> int:
    """Z-order key of the star's direction within the cube [-1, 1]^3."""
    return vec_to_z_index(star.dir, (-1.0,) * 3, (1.0,) * 3)


def z_index_from_star_quad(star: Star) -> int:
    """Z-order key of the star's quad distances within [0, 1]^6."""
    return vec_to_z_index(star.primary.distances, (0.0,) * 6, (1.0,) * 6)


def _quad(center: Sequence[float], neighbours: Sequence[Sequence[float]]) -> StarQuad:
    a, b, c = neighbours
    arcs = (
        unit_vec_arc_length(center, a),
        unit_vec_arc_length(center, b),
        unit_vec_arc_length(center, c),
        unit_vec_arc_length(a, b),
        unit_vec_arc_length(b, c),
        unit_vec_arc_length(c, a),
    )
    longest = max(arcs)
    if longest <= 0.0:
        raise ValueError("star quad has no extent")
    return StarQuad(tuple(d / longest for d in arcs), longest)


def _neighbour_dirs(leaf: BinaryNode[Star], count: int, needed: int) -> list:
    neighbours = find_k_nearest_neighbors(leaf, leaf.components, count)
    if len(neighbours) < needed:
        raise ValueError(f"at least {needed + 1} stars are needed to form star quads")
    return [node.key.obj.dir for node in neighbours]


def find_star_neighbors(leaves: Sequence[BinaryNode[Star]]) -> None:
    """Set each leaf star's primary quad from its three nearest neighbours."""
    for leaf in leaves:
        star = leaf.key.obj
        dirs = _neighbour_dirs(leaf, 3, 3)
        star.primary = _quad(star.dir, dirs)


def find_star_neighbors_redundancy(
    leaves: Sequence[BinaryNode[Star]],
) -> list[StarQuad]:
    """Four quads per leaf star, each from a different trio of its nearest neighbours."""
    quads = []
    for leaf in leaves:
        star = leaf.key.obj
        dirs = _neighbour_dirs(leaf, 6, 4)
        for trio in _REDUNDANT_NEIGHBOURS:
            quads.append(_quad(star.dir, [dirs[j] for j in trio]))
    return quads


def ra_to_string(ra: float) -> str:
    """Right ascension in radians as hours, minutes and seconds."""
    hour = 24.0 * (ra / (2.0 * PI))
    minute = 60.0 * (hour - math.floor(hour))
    second = 60.0 * (minute - math.floor(minute))
    return f"{int(hour)}h {int(minute)}m {int(second)}s"


def dec_to_string(dec: float) -> str:
    """Declination in radians as degrees, minutes and seconds."""
    deg = 360.0 * dec / (2.0 * PI)
    minute = 60.0 * (deg - math.floor(deg))
    second = 60.0 * (minute - math.floor(minute))
    return f"{int(deg)} {int(minute)}m {int(second)}s"


def format_star(star: Star) -> str:
    """One-line description of a star's position."""
    x, y, z = star.dir
    return (
        f"{star.name}:\tR.A: {ra_to_string(star.right_ascension)}"
        f"\tDEC: {dec_to_string(star.declination)}"
        f"\t x: {x:f}\ty: {y:f}\tz: {z:f}"
    )