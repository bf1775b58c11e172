"""A sky atlas: the catalogue split into tiles on the faces of a cube."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .catalog import Star, z_index_from_star_quad
from .identify import Orientation, test_orientation_from_centroids
from .linalg import normalize
from .tree import build_tree

_QUAD_SIZE = 6


@dataclass(eq=False)
class SkyMap:
    """One tile of the atlas and the stars that fall on it.

    ``bounding_angle`` is not an angle: it is the smallest dot product
    between the directions of any two of the tile's corners.
    """

    dir: np.ndarray
    bounding_angle: float
    stars: list[Star] = field(default_factory=list)

    @property
    def star_count(self) -> int:
        """Number of stars on the tile."""
        return len(self.stars)


def _tile_geometry(
    index: int, subdivisions: int
) -> tuple[np.ndarray, float]:
    side = subdivisions + 1
    tiles_per_face = side * side
    face, within = divmod(index, tiles_per_face)
    u, v = divmod(within, side)
    axis = face % 3
    direction = 1.0 if face < 3 else -1.0

    corners = []
    for j in range(4):
        corner = np.zeros(3)
        corner[axis] = direction
        corner[(axis + 1) % 3] = 2.0 * ((u + (j + (j // 2) % 2) % 2) / side) - 1.0
        corner[(axis + 2) % 3] = 2.0 * ((v + (j // 2) % 2) / side) - 1.0
        corners.append(normalize(corner))

    center = np.zeros(3)
    center[axis] = direction
    center[(axis + 1) % 3] = 2.0 * ((u + 0.5) / side) - 1.0
    center[(axis + 2) % 3] = 2.0 * ((v + 0.5) / side) - 1.0

    min_dot = 1.0
    for j, first in enumerate(corners):
        for second in corners[j + 1 :]:
            min_dot = min(min_dot, float(first @ second))
    return normalize(center), min_dot


def _tile_index(direction: Sequence[float], subdivisions: int) -> int:
    side = subdivisions + 1
    similarities = [float(c) for c in direction]
    closest = 0
    most_similar = 0.0
    for j, similarity in enumerate(similarities):
        if abs(similarity) > abs(most_similar):
            most_similar = similarity
            closest = j
    if most_similar == 0.0:
        raise ValueError("star direction must not be the zero vector")
    denominator = abs(similarities[closest])
    face = closest + (3 if similarities[closest] < 0.0 else 0)
    u = int(side * ((similarities[(closest + 1) % 3] / denominator + 1.0) / 2.0))
    v = int(side * ((similarities[(closest + 2) % 3] / denominator + 1.0) / 2.0))
    # A star exactly on a cube edge projects to the far border of the face.
    u = min(u, subdivisions)
    v = min(v, subdivisions)
    return face * side * side + u * side + v


class SkyAtlas:
    """Stars grouped into ``6 * (subdivisions + 1) ** 2`` tiles of a cube map."""

    def __init__(self, stars: Sequence[Star], subdivisions: int) -> None:
        if subdivisions < 0:
            raise ValueError("subdivisions must not be negative")
        self.subdivisions = subdivisions
        tile_count = 6 * (subdivisions + 1) ** 2
        self.maps: list[SkyMap] = []
        for i in range(tile_count):
            direction, bounding = _tile_geometry(i, subdivisions)
            self.maps.append(SkyMap(direction, bounding))
        for star in stars:
            self.maps[_tile_index(star.dir, subdivisions)].stars.append(star)

    @property
    def tile_count(self) -> int:
        """Number of tiles in the atlas."""
        return len(self.maps)

    def get_visible_stars(self, direction: Sequence[float], angle: float) -> list[Star]:
        """Stars on every tile whose centre lies within ``angle`` of ``direction``."""
        direction = np.asarray(direction, dtype=float)
        threshold = math.cos(angle)
        return [
            star
            for sky_map in self.maps
            if float(sky_map.dir @ direction) > threshold
            for star in sky_map.stars
        ]

    def get_orientation(
        self,
        centroids,
        fov: float,
        safety_fov: float,
        identification_threshold: float,
        estimated_dir: Sequence[float],
        true_stars: Sequence[Star],
    ) -> tuple[Orientation, int]:
        """Identify the centroids against the stars near ``estimated_dir``.

        Returns the orientation and the number of catalogue stars searched.
        """
        candidates = self.get_visible_stars(estimated_dir, safety_fov)
        root = build_tree(candidates, _QUAD_SIZE, z_index_from_star_quad)
        orientation = test_orientation_from_centroids(
            centroids, fov, identification_threshold, root, true_stars
        )
        return orientation, len(candidates)