"""Binary space-partitioning tree over z-order keys, with nearest-neighbour search."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Iterator, Optional, Sequence, TypeVar

from .linalg import format_vector
from .zorder import (
    bits_per_component,
    dist_squared_between_z_indices,
    extract_int_component,
)

T = TypeVar("T")

_MASK64 = (1 << 64) - 1


@dataclass(frozen=True)
class KeyedObject(Generic[T]):
    """An object paired with its z-order key."""

    obj: T
    z_index: int


@dataclass(eq=False)
class BinaryNode(Generic[T]):
    """A node of the tree; leaves have no split direction."""

    key: KeyedObject[T]
    dimensions: int
    components: tuple[int, ...]
    split_position: int = 0
    split_direction: Optional[int] = None
    left: Optional[BinaryNode[T]] = field(default=None, repr=False)
    right: Optional[BinaryNode[T]] = field(default=None, repr=False)
    parent: Optional[BinaryNode[T]] = field(default=None, repr=False)
    sibling: Optional[BinaryNode[T]] = field(default=None, repr=False)

    def is_leaf(self) -> bool:
        """True when the node has no children."""
        return self.split_direction is None


def _make_node(pair: KeyedObject[T], dimensions: int) -> BinaryNode[T]:
    components = tuple(
        extract_int_component(pair.z_index, dimensions, i) for i in range(dimensions)
    )
    return BinaryNode(key=pair, dimensions=dimensions, components=components)


def find_split(
    pairs: Sequence[KeyedObject[T]], first: int, last: int, dimensions: int
) -> tuple[int, int, int]:
    """Split the sorted range ``pairs[first:last + 1]`` on its highest differing bit.

    Returns ``(index, direction, position)``: the last index of the left half,
    the component the split plane cuts, and the plane's integer position.
    """
    if not 0 <= first < last < len(pairs):
        raise ValueError("split range must hold at least two pairs")
    bits_per_component(dimensions)
    high = pairs[last].z_index
    difference = pairs[first].z_index ^ high
    if difference == 0:
        # Identical keys: no plane separates them, so halve the range.
        return (first + last) // 2, 0, extract_int_component(high, dimensions, 0)

    bit = difference.bit_length() - 1
    direction = bit % dimensions
    mask = 1 << bit
    index = (
        bisect.bisect_left(
            pairs, True, first, last + 1, key=lambda p: bool(p.z_index & mask)
        )
        - 1
    )
    split_plane = high & ((_MASK64 << bit) & _MASK64)
    position = extract_int_component(split_plane, dimensions, direction)
    return index, direction, position


def _divide(
    pairs: Sequence[KeyedObject[T]], first: int, last: int, dimensions: int
) -> BinaryNode[T]:
    if first == last:
        return _make_node(pairs[first], dimensions)
    index, direction, position = find_split(pairs, first, last, dimensions)
    node = _make_node(pairs[index], dimensions)
    node.split_direction = direction
    node.split_position = position
    left = _divide(pairs, first, index, dimensions)
    right = _divide(pairs, index + 1, last, dimensions)
    left.parent = right.parent = node
    left.sibling = right
    right.sibling = left
    node.left = left
    node.right = right
    return node


def build_tree(
    objects: Iterable[T], dimensions: int, z_index_of: Callable[[T], int]
) -> BinaryNode[T]:
    """Build a tree whose leaves hold ``objects`` ordered by their z-order keys."""
    pairs = sorted(
        (KeyedObject(obj, z_index_of(obj)) for obj in objects),
        key=lambda p: p.z_index,
    )
    if not pairs:
        raise ValueError("cannot build a tree from no objects")
    return _divide(pairs, 0, len(pairs) - 1, dimensions)


class _NearestList(Generic[T]):
    """The closest items seen so far, in ascending order of distance."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._distances: list[int] = []
        self._items: list[T] = []

    @property
    def worst(self) -> int:
        if len(self._distances) < self.capacity:
            return _MASK64
        return self._distances[-1]

    def offer(self, distance: int, item: T) -> None:
        if distance >= self.worst:
            return
        position = bisect.bisect_right(self._distances, distance)
        self._distances.insert(position, distance)
        self._items.insert(position, item)
        if len(self._items) > self.capacity:
            self._distances.pop()
            self._items.pop()

    @property
    def items(self) -> list[T]:
        return list(self._items)


def _split_plane_distance(node: BinaryNode[T], reference: Sequence[int]) -> int:
    return int(reference[node.split_direction]) - node.split_position


def _distance_to_node(node: BinaryNode[T], reference: Sequence[int]) -> int:
    return sum((c - int(r)) ** 2 for c, r in zip(node.components, reference))


def _inspect(
    node: BinaryNode[T], reference: Sequence[int], nearest: _NearestList
) -> None:
    if node.is_leaf():
        nearest.offer(_distance_to_node(node, reference), node)
        return
    distance = _split_plane_distance(node, reference)
    if distance * distance < nearest.worst:
        _inspect(node.left, reference, nearest)
        _inspect(node.right, reference, nearest)
    elif distance > 0:
        _inspect(node.right, reference, nearest)
    else:
        _inspect(node.left, reference, nearest)


def find_k_nearest_neighbors(
    host: BinaryNode[T], reference: Sequence[int], k: int
) -> list[BinaryNode[T]]:
    """Up to ``k`` leaves closest to ``reference``, nearest first, excluding ``host``.

    The search climbs from ``host`` towards the root, examining each sibling
    subtree that could hold a closer leaf.
    """
    if k < 0:
        raise ValueError("k must not be negative")
    if k == 0:
        return []
    nearest: _NearestList[BinaryNode[T]] = _NearestList(k)
    current = host
    while current.sibling is not None:
        distance = _split_plane_distance(current.parent, reference)
        if distance * distance < nearest.worst:
            _inspect(current.sibling, reference, nearest)
        current = current.parent
    return nearest.items


def find_cell(
    root: BinaryNode[T],
    v: Sequence[float],
    lo: Sequence[float],
    hi: Sequence[float],
) -> BinaryNode[T]:
    """The leaf whose region contains the point ``v`` scaled from [lo, hi]."""
    scale = 1 << bits_per_component(root.dimensions)
    components = [
        int((float(x) - float(a)) / (float(b) - float(a)) * scale)
        for x, a, b in zip(v, lo, hi)
    ]
    current = root
    while not current.is_leaf():
        if components[current.split_direction] < current.split_position:
            current = current.left
        else:
            current = current.right
    return current


def _preorder(root: BinaryNode[T]) -> Iterator[BinaryNode[T]]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if not node.is_leaf():
            stack.append(node.right)
            stack.append(node.left)


def collect_leaf_nodes(root: BinaryNode[T]) -> list[BinaryNode[T]]:
    """All leaves from left to right."""
    return [node for node in _preorder(root) if node.is_leaf()]


def brute_force_neighbors(
    objects: Iterable[T],
    reference: BinaryNode[T],
    neighbor_count: int,
    z_index_of: Callable[[T], int],
) -> list[T]:
    """Nearest objects to ``reference`` found by checking every object."""
    if neighbor_count < 0:
        raise ValueError("neighbor_count must not be negative")
    if neighbor_count == 0:
        return []
    nearest: _NearestList[T] = _NearestList(neighbor_count)
    for obj in objects:
        if obj is reference.key.obj:
            continue
        distance = dist_squared_between_z_indices(
            z_index_of(obj), reference.key.z_index, reference.dimensions
        )
        nearest.offer(distance, obj)
    return nearest.items


def _prefix(node: BinaryNode[T]) -> str:
    parts = []
    current = node
    if current.parent is not None:
        if current.sibling.key.z_index < current.key.z_index:
            parts.append("\u2514\u2500\u2500\u2500\u2500")
        else:
            parts.append("\u251c\u2500\u2500\u2500\u2500")
        current = current.parent
    while current is not None:
        if current.sibling is not None:
            if current.sibling.key.z_index < current.key.z_index:
                parts.append("     ")
            else:
                parts.append("\u2502    ")
        current = current.parent
    return "".join(reversed(parts))


def format_tree(
    node: BinaryNode[T], describe: Optional[Callable[[T], str]] = None
) -> str:
    """Draw the subtree under ``node``, one line per node."""
    lines = []
    for current in _preorder(node):
        label = describe(current.key.obj) if describe is not None else ""
        direction = -1 if current.split_direction is None else current.split_direction
        lines.append(
            f"{_prefix(current)}{label} dir: {direction} "
            f"pos: {current.split_position}\t{format_vector(current.components)}\n"
        )
    return "".join(lines)