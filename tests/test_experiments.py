import math

import pytest

from startracker.database import synthesize_database
from startracker.experiments import (
    average_distance,
    edge_star_proportion_vs_fov,
    identification_test,
    main,
    quad_identification_vs_noise,
    tiled_identification_test,
)


@pytest.fixture(scope="module")
def catalogue(tmp_path_factory):
    path = tmp_path_factory.mktemp("db") / "stars.star"
    stars = synthesize_database(300, path)
    return stars, path


def _read_lines(path):
    return path.read_text().splitlines()


def test_quad_identification_writes_one_rate_per_step(catalogue, tmp_path):
    stars, _ = catalogue
    rates = quad_identification_vs_noise(stars, 200, 5, 0.0, 0.2, 3, tmp_path)
    path = tmp_path / "200_stars_5_samples_0.000000_to_0.200000_noise.txt"
    lines = _read_lines(path)
    assert len(rates) == 3
    assert [float(line) for line in lines] == pytest.approx(rates, abs=1e-6)
    assert all(0.0 <= rate <= 1.0 for rate in rates)


def test_quad_identification_is_deterministic_and_clamps_limit(catalogue, tmp_path):
    stars, _ = catalogue
    first = quad_identification_vs_noise(stars, 10_000, 4, 0.0, 0.1, 2, tmp_path)
    second = quad_identification_vs_noise(stars, 10_000, 4, 0.0, 0.1, 2, tmp_path)
    assert first == second
    assert (tmp_path / "300_stars_4_samples_0.000000_to_0.100000_noise.txt").exists()


def test_quad_identification_rejects_zero_steps(catalogue, tmp_path):
    stars, _ = catalogue
    with pytest.raises(ValueError):
        quad_identification_vs_noise(stars, 50, 2, 0.0, 0.1, 0, tmp_path)


def test_edge_stars_never_exceed_visible_stars(catalogue, tmp_path):
    stars, _ = catalogue
    results = edge_star_proportion_vs_fov(stars, 3, 0.5, 1.0, 2, tmp_path, k=2)
    assert len(results) == 2
    for visible, edge in results:
        assert 0.0 <= edge <= visible
    path = tmp_path / "300_stars_3_samples_edge_stars_vs_visible_stars.txt"
    lines = _read_lines(path)
    parsed = [tuple(float(x) for x in line.split(",")) for line in lines]
    assert parsed == pytest.approx(results, abs=1e-6)


def test_edge_stars_rejects_bad_k(catalogue, tmp_path):
    stars, _ = catalogue
    with pytest.raises(ValueError):
        edge_star_proportion_vs_fov(stars, 1, 0.5, 1.0, 2, tmp_path, k=6)


def test_average_distance_histograms_are_normalised(catalogue, tmp_path, capsys):
    stars, _ = catalogue
    averages, bins = average_distance(stars, 10_000, tmp_path)
    assert len(bins) == 100
    for column in range(3):
        assert sum(b[column] for b in bins) == pytest.approx(1.0)
    assert averages[0] <= averages[1] <= averages[2]
    lines = _read_lines(tmp_path / "300_star_distance_histogram.txt")
    assert lines[0].startswith("min:0.000000, max:")
    assert lines[1] == "first,second,third"
    assert len(lines) == 102
    printed = capsys.readouterr().out.strip().split(", ")
    assert [float(x) for x in printed] == pytest.approx(averages, abs=1e-6)


def test_average_distance_rejects_no_samples(catalogue, tmp_path):
    stars, _ = catalogue
    with pytest.raises(ValueError):
        average_distance(stars, 0, tmp_path)


def test_identification_test_reports_header_and_rates(catalogue, capsys):
    stars, _ = catalogue
    visible, matches, rate = identification_test(stars, 2)
    out = capsys.readouterr().out
    assert out.startswith("Orientation determination test. Fov:0.120000\tSamples:2")
    assert 0.0 <= rate <= 100.0
    assert 0.0 <= matches <= visible


def test_tiled_identification_prints_what_it_returns(catalogue, capsys):
    stars, _ = catalogue
    visible, searched, rate = tiled_identification_test(stars, 2, 2, 1.0, 0.0, 0.0001)
    printed = capsys.readouterr().out.strip().rstrip(",").split(", ")
    assert float(printed[0]) == pytest.approx(visible, abs=1e-6)
    assert float(printed[2]) == pytest.approx(rate, abs=1e-6)
    assert visible > 0.0
    assert searched >= 0.0
    assert 0.0 <= rate <= 100.0
    assert not math.isnan(rate)


def test_main_runs_on_stored_database(catalogue, capsys):
    _, path = catalogue
    code = main(
        [str(path), "--samples", "1", "--subdivisions", "2", "--fov", "1.0"]
    )
    assert code == 0
    assert capsys.readouterr().out.strip().endswith(",")


def test_main_reports_missing_database(tmp_path, capsys):
    code = main([str(tmp_path / "missing.star")])
    assert code == 1
    assert "cannot load" in capsys.readouterr().out