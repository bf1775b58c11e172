import random

import pytest

from startracker.tree import (
    BinaryNode,
    KeyedObject,
    brute_force_neighbors,
    build_tree,
    collect_leaf_nodes,
    find_cell,
    find_k_nearest_neighbors,
    find_split,
    format_tree,
)
from startracker.zorder import (
    dist_squared_between_z_indices,
    extract_int_component,
    int_components_from_vec,
    vec_to_z_index,
)

LO = (0.0, 0.0, 0.0)
HI = (1.0, 1.0, 1.0)


def _key(point):
    return vec_to_z_index(point, LO, HI)


def _points(count, seed):
    rng = random.Random(seed)
    return [tuple(rng.random() for _ in range(3)) for _ in range(count)]


def _named(count, seed):
    return [{"name": f"s{i}", "p": p} for i, p in enumerate(_points(count, seed))]


def _leaves_under(node):
    return collect_leaf_nodes(node)


def test_leaves_hold_every_object_in_key_order():
    points = _points(60, 1)
    root = build_tree(points, 3, _key)
    leaves = collect_leaf_nodes(root)
    assert len(leaves) == len(points)
    assert {id(leaf.key.obj) for leaf in leaves} == {id(p) for p in points}
    keys = [leaf.key.z_index for leaf in leaves]
    assert keys == sorted(keys)
    assert all(leaf.is_leaf() for leaf in leaves)


def test_internal_nodes_are_linked_and_separated():
    root = build_tree(_points(50, 2), 3, _key)
    stack = [root]
    internal = 0
    while stack:
        node = stack.pop()
        if node.is_leaf():
            assert node.left is None and node.right is None
            continue
        internal += 1
        assert node.left.parent is node and node.right.parent is node
        assert node.left.sibling is node.right and node.right.sibling is node.left
        assert 0 <= node.split_direction < 3
        d = node.split_direction
        assert all(
            leaf.components[d] < node.split_position for leaf in _leaves_under(node.left)
        )
        assert all(
            leaf.components[d] >= node.split_position
            for leaf in _leaves_under(node.right)
        )
        stack.extend([node.left, node.right])
    assert internal == 49


def test_single_object_tree_is_a_leaf_with_its_components():
    point = (0.25, 0.5, 0.75)
    root = build_tree([point], 3, _key)
    assert root.is_leaf()
    assert root.parent is None and root.sibling is None
    assert root.key == KeyedObject(point, _key(point))
    assert root.components == int_components_from_vec(point, LO, HI)


def test_build_tree_rejects_no_objects():
    with pytest.raises(ValueError):
        build_tree([], 3, _key)


def test_find_split_separates_on_highest_differing_bit():
    pairs = sorted(
        (KeyedObject(p, _key(p)) for p in _points(40, 3)), key=lambda p: p.z_index
    )
    index, direction, position = find_split(pairs, 0, len(pairs) - 1, 3)
    assert 0 <= index < len(pairs) - 1
    left = [extract_int_component(p.z_index, 3, direction) for p in pairs[: index + 1]]
    right = [extract_int_component(p.z_index, 3, direction) for p in pairs[index + 1 :]]
    assert max(left) < position <= min(right)


def test_find_split_rejects_a_single_element_range():
    pairs = [KeyedObject("a", 1), KeyedObject("b", 2)]
    with pytest.raises(ValueError):
        find_split(pairs, 1, 1, 3)


def test_duplicate_keys_still_give_every_leaf():
    objects = [{"name": i, "p": (0.5, 0.5, 0.5)} for i in range(7)]
    root = build_tree(objects, 3, lambda o: _key(o["p"]))
    leaves = collect_leaf_nodes(root)
    assert sorted(leaf.key.obj["name"] for leaf in leaves) == list(range(7))


def test_knn_matches_brute_force_distances():
    points = _points(120, 4)
    root = build_tree(points, 3, _key)
    leaves = collect_leaf_nodes(root)
    for leaf in leaves[::11]:
        found = find_k_nearest_neighbors(leaf, leaf.components, 5)
        brute = brute_force_neighbors(points, leaf, 5, _key)
        found_distances = [
            dist_squared_between_z_indices(n.key.z_index, leaf.key.z_index, 3)
            for n in found
        ]
        brute_distances = [
            dist_squared_between_z_indices(_key(p), leaf.key.z_index, 3) for p in brute
        ]
        assert found_distances == brute_distances


def test_knn_excludes_host_and_is_ascending():
    root = build_tree(_points(80, 5), 3, _key)
    host = collect_leaf_nodes(root)[17]
    found = find_k_nearest_neighbors(host, host.components, 6)
    assert len(found) == 6
    assert host not in found
    distances = [
        dist_squared_between_z_indices(n.key.z_index, host.key.z_index, 3)
        for n in found
    ]
    assert distances == sorted(distances)


def test_knn_with_zero_neighbours_is_empty():
    root = build_tree(_points(10, 6), 3, _key)
    host = collect_leaf_nodes(root)[0]
    assert find_k_nearest_neighbors(host, host.components, 0) == []


def test_knn_returns_all_others_when_k_is_large():
    root = build_tree(_points(9, 7), 3, _key)
    leaves = collect_leaf_nodes(root)
    host = leaves[4]
    found = find_k_nearest_neighbors(host, host.components, 20)
    assert {id(n) for n in found} == {id(n) for n in leaves if n is not host}


def test_find_cell_at_lower_corner_is_first_leaf():
    root = build_tree(_points(30, 8), 3, _key)
    cell = find_cell(root, LO, LO, HI)
    assert cell is collect_leaf_nodes(root)[0]


def test_find_cell_always_returns_a_leaf():
    root = build_tree(_points(30, 9), 3, _key)
    leaves = collect_leaf_nodes(root)
    for point in _points(15, 10):
        cell = find_cell(root, point, LO, HI)
        assert cell.is_leaf()
        assert any(cell is leaf for leaf in leaves)


def test_brute_force_excludes_reference_and_orders_results():
    points = _points(25, 11)
    root = build_tree(points, 3, _key)
    reference = collect_leaf_nodes(root)[3]
    result = brute_force_neighbors(points, reference, 4, _key)
    assert len(result) == 4
    assert all(p is not reference.key.obj for p in result)
    distances = [
        dist_squared_between_z_indices(_key(p), reference.key.z_index, 3)
        for p in result
    ]
    assert distances == sorted(distances)


def test_brute_force_rejects_negative_count():
    points = _points(5, 12)
    root = build_tree(points, 3, _key)
    with pytest.raises(ValueError):
        brute_force_neighbors(points, root, -1, _key)


def test_format_tree_draws_one_line_per_node():
    objects = _named(6, 13)
    root = build_tree(objects, 3, lambda o: _key(o["p"]))
    text = format_tree(root, lambda o: o["name"])
    lines = text.splitlines()
    assert len(lines) == 11
    assert lines[0].startswith(root.key.obj["name"] + " dir: ")
    assert lines[1].startswith("\u251c\u2500\u2500\u2500\u2500")
    assert "\u2514\u2500\u2500\u2500\u2500" in lines[-1]
    assert text.count(" dir: -1 pos: 0\t") == 6


def test_format_tree_without_description_shows_leaf_components():
    point = (0.1, 0.2, 0.3)
    root = build_tree([point], 3, _key)
    c = root.components
    assert format_tree(root) == f" dir: -1 pos: 0\t[{c[0]}, {c[1]}, {c[2]}]\n"


def test_node_fields_default_to_a_leaf():
    node = BinaryNode(key=KeyedObject("x", 0), dimensions=3, components=(0, 0, 0))
    assert node.is_leaf()
    assert node.split_position == 0