"""Experiments that measure how well star identification works on synthetic skies."""

from __future__ import annotations

import argparse
import itertools
import math
import os
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

import numpy as np

from .atlas import SkyAtlas
from .catalog import (
    Star,
    StarQuad,
    point_on_sphere,
    random_float,
    z_index_from_star_quad,
)
from .database import load_database
from .identify import (
    find_matches,
    generate_synthetic_image_data,
    star_quads_from_centroids,
    test_orientation_from_centroids,
)
from .tree import build_tree

PathLike = Union[str, "os.PathLike[str]"]

_QUAD_SIZE = 6
_BIN_COUNT = 100
_FULL_TURN = 6.28
_IDENTIFICATION_FOV = 0.12
_IDENTIFICATION_THRESHOLD = 0.01


def _sweep(start: float, end: float, steps: int) -> list[float]:
    if steps < 1:
        raise ValueError("steps must be at least 1")
    step = (end - start) / (steps - 1) if steps > 1 else 0.0
    values = []
    value = start
    for _ in range(steps):
        values.append(value)
        value += step
    return values


def _random_view(seeds: Iterator[int]) -> tuple[np.ndarray, float, int]:
    theta = random_float(next(seeds)) * _FULL_TURN
    phi = math.asin(random_float(next(seeds)) * 2.0 - 1.0)
    normal = point_on_sphere(theta, phi)
    rotation = random_float(next(seeds)) * _FULL_TURN
    return normal, rotation, next(seeds)


def quad_identification_vs_noise(
    stars: Sequence[Star],
    star_limit: int,
    samples: int,
    start_noise: float,
    end_noise: float,
    steps: int,
    folder: PathLike,
) -> list[float]:
    """Rate at which a noisy star quad is matched back to its own star.

    One rate per noise level is written, one per line, to a file in
    ``folder`` and returned.
    """
    if samples < 1:
        raise ValueError("samples must be at least 1")
    noises = _sweep(start_noise, end_noise, steps)
    star_limit = min(star_limit, len(stars))
    catalogue = list(stars[:star_limit])
    root = build_tree(catalogue, _QUAD_SIZE, z_index_from_star_quad)

    name = (
        f"{star_limit}_stars_{samples}_samples_"
        f"{start_noise:f}_to_{end_noise:f}_noise.txt"
    )
    seeds = itertools.count()
    rates = []
    with open(Path(folder) / name, "w") as destination:
        for noise in noises:
            successes = 0
            for _ in range(samples):
                star_index = int(random_float(next(seeds)) * (star_limit - 1))
                original = catalogue[star_index].primary
                reference = StarQuad(
                    tuple(
                        d + noise * random_float(next(seeds))
                        for d in original.distances
                    ),
                    original.longest_arc,
                )
                guess = find_matches(root, reference, 1)[0]
                if guess is catalogue[star_index]:
                    successes += 1
            rate = successes / samples
            rates.append(rate)
            destination.write(f"{rate:f}\n")
    return rates


def edge_star_proportion_vs_fov(
    stars: Sequence[Star],
    samples: int,
    start_fov: float,
    end_fov: float,
    steps: int,
    folder: PathLike,
    k: int = 0,
) -> list[tuple[float, float]]:
    """Average visible stars and edge stars per image for a sweep of fields of view.

    A star counts as an edge star when the image border is closer to it than
    the ``k``-th distance of its quad; in images with three or fewer stars
    every star counts as one.
    """
    if samples < 1:
        raise ValueError("samples must be at least 1")
    if not 0 <= k < _QUAD_SIZE:
        raise ValueError(f"k must lie between 0 and {_QUAD_SIZE - 1}")
    fovs = _sweep(start_fov, end_fov, steps)
    name = f"{len(stars)}_stars_{samples}_samples_edge_stars_vs_visible_stars.txt"
    seeds = itertools.count()
    results = []
    with open(Path(folder) / name, "w") as destination:
        for fov in fovs:
            total_stars = 0
            total_edge_stars = 0
            for _ in range(samples):
                normal, rotation, image_seed = _random_view(seeds)
                centroids, visible = generate_synthetic_image_data(
                    normal, rotation, fov, stars, 0.0, image_seed
                )
                if len(visible) > 3:
                    quads = star_quads_from_centroids(centroids)
                    for (x, y), quad in zip(centroids, quads):
                        border = min(1.0 - x, 1.0 + x, 1.0 - y, 1.0 + y)
                        if border < quad.distances[k] * quad.longest_arc:
                            total_edge_stars += 1
                else:
                    total_edge_stars += len(visible)
                total_stars += len(visible)
            row = (total_stars / samples, total_edge_stars / samples)
            results.append(row)
            destination.write(f"{row[0]:f},{row[1]:f}\n")
    return results


def average_distance(
    stars: Sequence[Star], samples: int, folder: PathLike
) -> tuple[tuple[float, float, float], list[tuple[float, float, float]]]:
    """Histograms of the distances to each star's three nearest neighbours.

    Writes the histograms to a file in ``folder``, prints the mean distances
    and returns the means and the bins. Each bin holds the share of the
    summed distance that falls into it.
    """
    samples = min(samples, len(stars))
    if samples < 1:
        raise ValueError("samples must be at least 1")
    triples = [
        tuple(
            star.primary.distances[c] * star.primary.longest_arc for c in range(3)
        )
        for star in stars[:samples]
    ]
    sums = tuple(sum(column) for column in zip(*triples))
    minimum = 0.0
    maximum = max(0.0, max(max(t) for t in triples))
    spread = maximum - minimum
    if spread <= 0.0 or any(s <= 0.0 for s in sums):
        raise ValueError("the stars' neighbour distances are all zero")

    bins = [[0.0, 0.0, 0.0] for _ in range(_BIN_COUNT)]
    for triple in triples:
        for column, distance in enumerate(triple):
            index = int(_BIN_COUNT * (distance - minimum) / spread)
            index = min(index, _BIN_COUNT - 1)
            bins[index][column] += distance / sums[column]

    name = f"{samples}_star_distance_histogram.txt"
    with open(Path(folder) / name, "w") as destination:
        destination.write(f"min:{minimum:f}, max:{maximum:f}\nfirst,second,third\n")
        for first, second, third in bins:
            destination.write(f"{first:f},{second:f},{third:f}\n")

    averages = tuple(s / samples for s in sums)
    print(f"{averages[0]:f}, {averages[1]:f}, {averages[2]:f}")
    return averages, [tuple(b) for b in bins]


def identification_test(
    stars: Sequence[Star], samples: int
) -> tuple[float, float, float]:
    """Identify random synthetic images against the whole catalogue.

    Prints and returns the average visible stars, the average correct matches
    and the percentage of images whose three best stars were all right.
    """
    if samples < 1:
        raise ValueError("samples must be at least 1")
    fov = _IDENTIFICATION_FOV
    print(f"Orientation determination test. Fov:{fov:f}\tSamples:{samples}")
    root = build_tree(stars, _QUAD_SIZE, z_index_from_star_quad)
    seeds = itertools.count()
    total_visible = 0
    total_matches = 0
    total_successes = 0
    for _ in range(samples):
        normal, rotation, image_seed = _random_view(seeds)
        centroids, visible = generate_synthetic_image_data(
            normal, rotation, fov, stars, 0.0, image_seed
        )
        if len(visible) > 3:
            try:
                orientation = test_orientation_from_centroids(
                    centroids, fov, _IDENTIFICATION_THRESHOLD, root, visible
                )
            except ValueError:
                orientation = None
            if orientation is not None:
                total_matches += orientation.matches
                if orientation.top_three_matches == 3:
                    total_successes += 1
        total_visible += len(visible)

    average_visible = total_visible / samples
    average_matches = total_matches / samples
    success_rate = 100.0 * total_successes / samples
    print(
        f"Average visible stars: {average_visible:f}\t"
        f"Average matches: {average_matches:f}\t"
        f"Success rate: {success_rate:f}%"
    )
    return average_visible, average_matches, success_rate


def tiled_identification_test(
    stars: Sequence[Star],
    subdivisions: int,
    samples: int,
    fov: float,
    position_noise: float,
    identification_threshold: float,
) -> tuple[float, float, float]:
    """Identify noisy synthetic images using only the atlas tiles near the view.

    Prints the average visible stars, the noise and the success percentage,
    and returns the average visible stars, the average catalogue stars
    searched and the success percentage.
    """
    if samples < 1:
        raise ValueError("samples must be at least 1")
    atlas = SkyAtlas(stars, subdivisions)
    side = subdivisions + 1
    tile_angle = math.acos(1.0 / math.sqrt(1.0 + 2.0 / (side * side)))
    seeds = itertools.count()
    total_visible = 0
    total_successes = 0
    total_searched = 0
    for _ in range(samples):
        normal, rotation, image_seed = _random_view(seeds)
        centroids, visible = generate_synthetic_image_data(
            normal, rotation, fov, stars, position_noise, image_seed
        )
        if len(visible) > 3:
            try:
                orientation, searched = atlas.get_orientation(
                    centroids,
                    fov,
                    fov + tile_angle,
                    identification_threshold,
                    normal,
                    visible,
                )
            except ValueError:
                orientation, searched = None, 0
            total_searched += searched
            if orientation is not None and orientation.top_three_matches == 3:
                total_successes += 1
        total_visible += len(visible)

    average_visible = total_visible / samples
    success_rate = 100.0 * total_successes / samples
    print(f"{average_visible:f}, {position_noise:f}, {success_rate:f},")
    return average_visible, total_searched / samples, success_rate


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the tiled identification test on a stored catalogue."""
    parser = argparse.ArgumentParser(
        description="Measure star identification success on synthetic images."
    )
    parser.add_argument("database", nargs="?", default="./database_16000.star")
    parser.add_argument("--subdivisions", type=int, default=10)
    parser.add_argument("--samples", type=int, default=1000)
    parser.add_argument("--fov", type=float, default=0.13)
    parser.add_argument("--noise", type=float, default=0.01)
    parser.add_argument("--threshold", type=float, default=0.0001)
    args = parser.parse_args(argv)

    try:
        stars = load_database(args.database)
    except (OSError, ValueError) as error:
        print(f"cannot load {args.database}: {error}")
        return 1
    try:
        tiled_identification_test(
            stars, args.subdivisions, args.samples, args.fov, args.noise, args.threshold
        )
    except ValueError as error:
        print(f"error: {error}")
        return 1
    return 0