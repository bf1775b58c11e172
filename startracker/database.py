"""Binary star catalogue files: a count followed by fixed-size star records."""

from __future__ import annotations

import os
import struct
from typing import Iterable, Union

from .catalog import (
    NAME_SIZE,
    Star,
    StarQuad,
    find_star_neighbors,
    generate_random_stars,
    z_index_from_star,
)
from .tree import build_tree, collect_leaf_nodes

PathLike = Union[str, "os.PathLike[str]"]

_HEADER = struct.Struct("<I")
_RECORD = struct.Struct(f"<{NAME_SIZE}s3f3f6ff")


def _pack(star: Star) -> bytes:
    name = star.name.encode("utf-8")
    if len(name) >= NAME_SIZE:
        raise ValueError(f"star name must be shorter than {NAME_SIZE} bytes")
    return _RECORD.pack(
        name,
        star.right_ascension,
        star.declination,
        star.magnitude,
        *star.dir,
        *star.primary.distances,
        star.primary.longest_arc,
    )


def _unpack(values: tuple) -> Star:
    raw_name, ra, dec, magnitude, *rest = values
    name = raw_name.split(b"\0", 1)[0].decode("utf-8", errors="replace")
    direction = tuple(rest[0:3])
    distances = tuple(rest[3:9])
    return Star(
        name=name,
        right_ascension=ra,
        declination=dec,
        magnitude=magnitude,
        dir=direction,
        primary=StarQuad(distances, rest[9]),
    )


def load_database(path: PathLike) -> list[Star]:
    """Read every star stored in the file at ``path``."""
    with open(path, "rb") as source:
        data = source.read()
    if len(data) < _HEADER.size:
        raise ValueError("database file is missing its header")
    (count,) = _HEADER.unpack_from(data)
    body = data[_HEADER.size : _HEADER.size + count * _RECORD.size]
    if len(body) != count * _RECORD.size:
        raise ValueError("database file is shorter than its star count")
    return [_unpack(values) for values in _RECORD.iter_unpack(body)]


def store_database(path: PathLike, stars: Iterable[Star]) -> None:
    """Write ``stars`` to the file at ``path``."""
    records = [_pack(star) for star in stars]
    with open(path, "wb") as destination:
        destination.write(_HEADER.pack(len(records)))
        destination.writelines(records)


def synthesize_database(star_count: int, path: PathLike) -> list[Star]:
    """Create random stars, give each its primary quad, store them and return them."""
    stars = generate_random_stars(star_count)
    root = build_tree(stars, 3, z_index_from_star)
    find_star_neighbors(collect_leaf_nodes(root))
    store_database(path, stars)
    return stars