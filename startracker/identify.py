"""Star identification from image centroids and attitude estimation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .catalog import Star, StarQuad, same_direction
from .linalg import (
    cross,
    normalize,
    rotation_matrix,
    solve_system_of_equations,
    unit_vec_arc_length,
)
from .tree import BinaryNode, find_cell, find_k_nearest_neighbors
from .zorder import int_components_from_vec

_QUAD_SIZE = 6
_VARIETY = 3
_RATIO_THRESHOLD = 0.1
_LOWER = (0.0,) * _QUAD_SIZE
_UPPER = (1.0,) * _QUAD_SIZE


@dataclass(eq=False)
class Orientation:
    """Camera axes found from an image, with identification statistics."""

    forward: np.ndarray
    right: np.ndarray
    up: np.ndarray
    matches: int = 0
    top_three_matches: int = 0


def _as_centroids(centroids) -> np.ndarray:
    return np.asarray(centroids, dtype=float).reshape(-1, 2)


def find_matches(
    root: BinaryNode[Star], reference: StarQuad, match_count: int
) -> list[Star]:
    """Catalogue stars whose quads resemble ``reference``.

    The nearest neighbours come first and the star of the cell holding the
    reference quad comes last.
    """
    if match_count < 1:
        raise ValueError("match_count must be at least 1")
    components = int_components_from_vec(reference.distances, _LOWER, _UPPER)
    host = find_cell(root, reference.distances, _LOWER, _UPPER)
    nearby = find_k_nearest_neighbors(host, components, match_count - 1)
    if len(nearby) < match_count - 1:
        raise ValueError("the tree holds too few stars for that many matches")
    return [node.key.obj for node in nearby] + [host.key.obj]


def star_quads_from_centroids(centroids) -> list[StarQuad]:
    """One quad per centroid, built from it and its three nearest centroids."""
    points = _as_centroids(centroids)
    if len(points) < 4:
        raise ValueError("at least 4 centroids are needed to form star quads")
    deltas = points[:, None, :] - points[None, :, :]
    squared = (deltas**2).sum(axis=-1)

    quads = []
    for i, row in enumerate(squared):
        a, b, c = [j for j in np.argsort(row, kind="stable") if j != i][:3]
        distances = (
            math.sqrt(squared[i, a]),
            math.sqrt(squared[i, b]),
            math.sqrt(squared[i, c]),
            math.sqrt(squared[a, b]),
            math.sqrt(squared[b, c]),
            math.sqrt(squared[c, a]),
        )
        longest = max(distances)
        if longest <= 0.0:
            raise ValueError("centroids coincide; the star quad has no extent")
        quads.append(StarQuad(tuple(d / longest for d in distances), longest))
    return quads


def generate_synthetic_image_data(
    normal: Sequence[float],
    ccw_rotation: float,
    fov: float,
    stars: Sequence[Star],
    noise: float,
    random_seed: int,
) -> tuple[np.ndarray, list[Star]]:
    """Project the stars seen by a camera looking along ``normal``.

    Returns the centroids, in image coordinates from -1 to 1, and the stars
    they belong to. Gaussian noise with standard deviation ``noise`` is added
    to every coordinate.
    """
    normal = np.asarray(normal, dtype=float)
    right = normalize(cross(normal, (0.0, 1.0, 0.0)))
    right = normalize(rotation_matrix(normal, ccw_rotation) @ right)
    up = normalize(cross(right, normal))

    stars = list(stars)
    directions = np.array([star.dir for star in stars], dtype=float).reshape(-1, 3)
    generator = np.random.default_rng(random_seed)
    jitter = generator.normal(0.0, noise, size=(len(stars), 2))

    scale = math.tan(fov / 2.0)
    z = directions @ normal
    with np.errstate(divide="ignore", invalid="ignore"):
        x = (directions @ right) / (z * scale) + jitter[:, 0]
        y = (directions @ up) / (z * scale) + jitter[:, 1]
    visible = (z > 0.0) & (np.abs(x) < 1.0) & (np.abs(y) < 1.0)

    centroids = np.column_stack((x[visible], y[visible])).reshape(-1, 2)
    visible_stars = [star for star, seen in zip(stars, visible) if seen]
    return centroids, visible_stars


def _insert_top(top: list, score: float, entry: tuple[int, int]) -> None:
    for k, (held, _) in enumerate(top):
        if score > held:
            top.insert(k, (score, entry))
            top.pop()
            return


def _solve_axes(
    points: np.ndarray,
    fov: float,
    candidates: list[list[Star]],
    best: list[tuple[int, int]],
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    epsilon = math.sin(fov / 2.0)
    coefficients = np.array([candidates[i][a].dir for i, a in best], dtype=float)
    rows = [i for i, _ in best]
    x = solve_system_of_equations(coefficients, epsilon * points[rows, 0])
    y = solve_system_of_equations(coefficients, epsilon * points[rows, 1])
    return cross(y, x), x, y


def test_orientation_from_centroids(
    centroids,
    fov: float,
    identification_threshold: float,
    root: BinaryNode[Star],
    true_stars: Sequence[Star],
) -> Orientation:
    """Identify the centroids, solve the attitude and score it against ``true_stars``."""
    points = _as_centroids(centroids)
    if len(true_stars) != len(points):
        raise ValueError("true_stars must give one star per centroid")
    quads = star_quads_from_centroids(points)
    candidates = [find_matches(root, quad, _VARIETY) for quad in quads]
    scores = np.zeros((len(points), _VARIETY))

    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            observed = math.dist(points[i], points[j]) * fov * 0.5
            for a, first in enumerate(candidates[i]):
                for b, second in enumerate(candidates[j]):
                    diff = unit_vec_arc_length(first.dir, second.dir) - observed
                    factor = identification_threshold / (
                        identification_threshold + 50.0 * diff * diff
                    )
                    scores[i, a] += factor
                    scores[j, b] += factor

    top = [(0.0, (0, 0))] * 3
    matches = 0
    for i, (row, truth) in enumerate(zip(scores, true_stars)):
        high_score = 0.0
        local_best = 0
        for a, score in enumerate(row):
            if score > high_score:
                high_score = float(score)
                local_best = a
        _insert_top(top, high_score, (i, local_best))
        if same_direction(truth, candidates[i][local_best]):
            matches += 1

    best = [entry for _, entry in top]
    top_three = sum(
        same_direction(true_stars[i], candidates[i][a]) for i, a in best
    )
    forward, right, up = _solve_axes(points, fov, candidates, best)
    return Orientation(forward, right, up, matches, top_three)


def orientation_from_centroids(
    centroids, fov: float, root: BinaryNode[Star]
) -> Orientation:
    """Identify the centroids by separation ratios and solve the camera axes."""
    points = _as_centroids(centroids)
    quads = star_quads_from_centroids(points)
    candidates = [find_matches(root, quad, _VARIETY) for quad in quads]
    scores = np.zeros((len(points), _VARIETY))

    for i in range(len(points)):
        for j in range(len(points)):
            if i == j:
                continue
            ratio = math.dist(points[i], points[j]) / quads[i].longest_arc
            for a, first in enumerate(candidates[i]):
                for second in candidates[j]:
                    real_ratio = (
                        unit_vec_arc_length(first.dir, second.dir)
                        / first.primary.longest_arc
                    )
                    if abs(real_ratio - ratio) < _RATIO_THRESHOLD:
                        scores[i, a] += 1.0

    top = [(0.0, (0, 0))] * 3
    for i, row in enumerate(scores):
        for a, score in enumerate(row):
            _insert_top(top, float(score), (i, a))

    best = [entry for _, entry in top]
    forward, right, up = _solve_axes(points, fov, candidates, best)
    return Orientation(forward, right, up)