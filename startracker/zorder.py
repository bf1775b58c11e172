"""Z-order (Morton) encoding of vectors into 64-bit keys."""

from __future__ import annotations

from typing import Sequence

_MASK64 = (1 << 64) - 1


def bits_per_component(dimensions: int) -> int:
    """Number of bits each component gets in a 64-bit key."""
    if dimensions < 1:
        raise ValueError("dimensions must be at least 1")
    return (64 - 64 % dimensions) // dimensions


def spread_bits(x: int, dimensions: int) -> int:
    """Move bit ``b`` of ``x`` to position ``b * dimensions``."""
    bits = bits_per_component(dimensions)
    x &= (1 << bits) - 1
    out = 0
    position = 0
    while x:
        if x & 1:
            out |= 1 << (position * dimensions)
        x >>= 1
        position += 1
    return out


def cluster_bits(z: int, dimensions: int) -> int:
    """Gather the bits at positions that are multiples of ``dimensions``."""
    bits = bits_per_component(dimensions)
    z &= _MASK64
    out = 0
    for b in range(bits):
        if (z >> (b * dimensions)) & 1:
            out |= 1 << b
    return out


def _interleave(components: Sequence[int], dimensions: int) -> int:
    z = 0
    for i, component in enumerate(components):
        z += spread_bits(component, dimensions) << i
    return z & _MASK64


def int_components_from_vec(
    v: Sequence[float], lo: Sequence[float], hi: Sequence[float]
) -> tuple[int, ...]:
    """Quantize each component of ``v`` from [lo, hi] to integer grid units."""
    dimensions = len(v)
    scale = (1 << bits_per_component(dimensions)) - 1
    return tuple(
        int((float(x) - float(a)) / (float(b) - float(a)) * scale)
        for x, a, b in zip(v, lo, hi)
    )


def vec_to_z_index(
    v: Sequence[float], lo: Sequence[float], hi: Sequence[float]
) -> int:
    """Z-order key of ``v`` with each component scaled from [lo, hi]."""
    return _interleave(int_components_from_vec(v, lo, hi), len(v))


def clamped_vec_to_z_index(v: Sequence[float]) -> int:
    """Z-order key of a vector whose components already lie in [0, 1]."""
    dimensions = len(v)
    scale = 1 << bits_per_component(dimensions)
    return _interleave([int(float(x) * scale) for x in v], dimensions)


def extract_int_component(z: int, dimensions: int, k: int) -> int:
    """Integer value of component ``k`` stored in key ``z``."""
    return cluster_bits(z >> k, dimensions)


def dist_squared_between_z_indices(a: int, b: int, dimensions: int) -> int:
    """Squared grid distance between the points encoded by two keys."""
    total = 0
    for i in range(dimensions):
        delta = extract_int_component(a, dimensions, i) - extract_int_component(
            b, dimensions, i
        )
        total += delta * delta
    return total


def format_binary64(n: int) -> str:
    """The 64-bit binary digits of ``n``, most significant first."""
    return format(n & _MASK64, "064b")