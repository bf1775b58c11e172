# startracker

Tools for experimenting with star-tracker algorithms. It can synthesise a
star catalogue and simulate camera images of the sky. It can then identify
the stars in an image and estimate the camera's orientation from them.

## Modules

- `startracker.linalg`: small vector and matrix helpers on numpy arrays.
  - `cross`, `rotation_matrix`, `normalize`, `dist_sq` and
    `unit_vec_arc_length`.
  - `solve_system_of_equations`, which does Gaussian elimination without
    pivoting. It raises `ValueError` on a zero pivot.
  - `format_vector` and `format_matrix` for text output.
- `startracker.zorder`: Morton (Z-order) encoding of vectors into 64-bit keys.
  - `vec_to_z_index` and `int_components_from_vec` encode vectors.
  - `spread_bits`, `cluster_bits` and `extract_int_component` work on single
    components.
  - `dist_squared_between_z_indices` gives the squared grid distance between
    two keys.
- `startracker.tree`: a binary space-partitioning tree over Z-order keys.
  - `build_tree` builds the tree.
  - `find_cell` returns the leaf whose region holds a point.
  - `find_k_nearest_neighbors` returns the nearest leaves, excluding the
    starting leaf.
  - `brute_force_neighbors` is an exhaustive check of the same search.
  - `collect_leaf_nodes` and `format_tree` list and draw the tree.
- `startracker.catalog`: the `Star` and `StarQuad` records.
  - A star quad holds the six arcs between a star and its three nearest
    neighbours, scaled by the longest arc.
  - `generate_random_stars` places stars uniformly on the sphere. It draws
    its numbers from `random_float`, a deterministic per-seed Mersenne
    Twister value.
  - `find_star_neighbors` fills in each star's primary quad.
  - `find_star_neighbors_redundancy` builds four quads per star.
  - `ra_to_string`, `dec_to_string` and `format_star` describe positions.
- `startracker.database`: binary catalogue files.
  - A file holds a little-endian 32-bit star count followed by fixed-size
    records.
  - Each record has a 32-byte name and 32-bit floats for the angles, the
    magnitude, the direction and the primary quad.
  - `load_database` and `store_database` read and write the format.
  - `synthesize_database` creates random stars, computes their quads, stores
    them and returns them.
- `startracker.identify`: star identification.
  - `generate_synthetic_image_data` projects the stars seen by a camera onto
    image coordinates from -1 to 1, with optional Gaussian noise.
  - `star_quads_from_centroids` builds one quad per centroid.
  - `find_matches` looks up candidate catalogue stars for a quad.
  - `test_orientation_from_centroids` scores the candidates and solves the
    camera axes. It checks the result against the known stars and returns an
    `Orientation` with match counts.
  - `orientation_from_centroids` does the same without known stars.
- `startracker.atlas`: `SkyAtlas`, which splits the catalogue into
  `6 * (subdivisions + 1) ** 2` cube-face tiles (`SkyMap`).
  - `get_visible_stars` returns the stars on the tiles near a direction.
  - `get_orientation` identifies an image against those stars only. It
    returns the orientation and the number of stars searched.
- `startracker.experiments`: measurement runs on synthetic images.

## Installation

```
pip install .
```

To also install the test dependencies:

```
pip install .[test]
```

## Command line

```
startracker [DATABASE] [--subdivisions N] [--samples N] [--fov F] [--noise F] [--threshold F]
```

The command loads a catalogue file and runs the tiled identification
experiment on it.

| Argument | Default |
| --- | --- |
| `DATABASE` | `./database_16000.star` |
| `--subdivisions` | `10` |
| `--samples` | `1000` |
| `--fov` | `0.13` |
| `--noise` | `0.01` |
| `--threshold` | `0.0001` |

It prints three values on one line:

- the average number of visible stars;
- the centroid noise;
- the success percentage.

It exits with status 1 if the file cannot be loaded.

The command does not create catalogue files. Make one first with
`startracker.database.synthesize_database`.

## Library use

```python
from startracker.database import synthesize_database, load_database
from startracker.experiments import tiled_identification_test

synthesize_database(2000, "database_2000.star")
stars = load_database("database_2000.star")

average_visible, average_searched, success_rate = tiled_identification_test(
    stars,
    subdivisions=10,
    samples=100,
    fov=0.13,
    position_noise=0.01,
    identification_threshold=0.0001,
)
```

Other experiments in `startracker.experiments`:

- `quad_identification_vs_noise`: the success rate of matching noisy star
  quads back to their stars, for a range of noise levels. It writes the rates
  to a text file in a folder you give.
- `edge_star_proportion_vs_fov`: the average number of visible stars and of
  stars near the image border, for a range of fields of view. It writes them
  to a text file in a folder you give.
- `average_distance`: histograms of each star's distances to its three
  nearest neighbours. It writes them to a text file in a folder you give and
  prints the mean distances.
- `identification_test`: identifies images against the whole catalogue and
  prints the results. It writes no file.

Each experiment also returns its results.

## Running the tests

```
pytest
```