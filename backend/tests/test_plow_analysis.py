import pytest

from weatherbird.errors import InvalidInput
from weatherbird.services import plow_analysis

TS = "2026-01-15T06:00:00Z"

# Roughly along I-89 from Burlington toward Montpelier
I89 = [
    {"id": "p1", "latitude": 44.4759, "longitude": -73.2121, "route": "I-89", "timestamp": TS},
    {"id": "p2", "latitude": 44.4376, "longitude": -73.0687, "route": "I-89", "timestamp": TS},
    {"id": "p3", "latitude": 44.3400, "longitude": -72.7500, "route": "I-89", "timestamp": TS},
    {"id": "p4", "latitude": 44.2601, "longitude": -72.5754, "route": "US-2", "timestamp": TS},
]


def test_missing_latitude_reports_index():
    samples = [dict(I89[0]), dict(I89[1]), {"id": "bad", "longitude": -73.0, "timestamp": TS}]
    with pytest.raises(InvalidInput) as exc_info:
        plow_analysis.parse_plow_samples(samples)
    assert "index 2" in exc_info.value.message
    assert exc_info.value.details["index"] == 2


def test_non_numeric_coordinates_rejected():
    with pytest.raises(InvalidInput) as exc_info:
        plow_analysis.parse_plow_samples([{"latitude": "north", "longitude": -73.0}])
    assert exc_info.value.details["index"] == 0


def test_out_of_range_coordinates_rejected():
    with pytest.raises(InvalidInput):
        plow_analysis.parse_plow_samples([I89[0], {"latitude": 95.0, "longitude": -73.0}])


def test_zero_coordinates_are_valid():
    plows = plow_analysis.parse_plow_samples([{"latitude": 0, "longitude": 0}])
    assert plows[0].id == "plow-0"


def test_valid_input_never_raises():
    plows = plow_analysis.parse_plow_samples(I89)
    rating, distribution = plow_analysis.rate(plows, "I-89", 60)
    assert rating.plow_count == 4
    assert 1 <= rating.rating <= 10
    assert distribution.routes == {"I-89": 3, "US-2": 1}


@pytest.mark.parametrize(
    "count, length, expected_rating, expected_label",
    [
        (10, 100, 9, "excellent"),
        (5, 100, 8, "good"),
        (2, 100, 6, "moderate"),
        (1, 100, 4, "minimal"),
        (1, 200, 2, "poor"),
    ],
)
def test_density_cut_points(count, length, expected_rating, expected_label):
    plows = plow_analysis.parse_plow_samples(I89[:1] * count)
    rating, _ = plow_analysis.rate(plows, "Route 7", length)
    assert (rating.rating, rating.label) == (expected_rating, expected_label)
    assert rating.plow_density == pytest.approx(count / length)


def test_no_active_plows_rates_one():
    samples = [dict(s, status="inactive") for s in I89]
    rating, distribution = plow_analysis.rate(plow_analysis.parse_plow_samples(samples), "I-89", 50)
    assert rating.rating == 1
    assert rating.label == "none"
    assert distribution.active_plows == 0
    assert distribution.total_plows == 4
    assert "Avoid travel if possible" in rating.recommendations


def test_region_uses_network_length():
    rating, _ = plow_analysis.rate(plow_analysis.parse_plow_samples(I89), "Vermont")
    assert rating.coverage_length_mi == 2700
    assert rating.label == "poor"


def test_footprint_estimated_from_sample_spread():
    plows = plow_analysis.parse_plow_samples(I89)
    rating, _ = plow_analysis.rate(plows, "I-89")
    assert 30 < rating.coverage_length_mi < 40


def test_tight_cluster_uses_minimum_footprint():
    plows = plow_analysis.parse_plow_samples(I89[:1] * 3)
    rating, _ = plow_analysis.rate(plows, "Church Street")
    assert rating.coverage_length_mi == plow_analysis.MIN_FOOTPRINT_MI


def test_clusters_and_gaps():
    plows = plow_analysis.parse_plow_samples(I89)
    distribution = plow_analysis.analyze_distribution(plows)
    # All four stops are more than 2 miles apart
    assert distribution.clusters == 4
    assert distribution.largest_gap_mi > distribution.mean_spacing_mi > 0


def test_haversine_burlington_to_montpelier():
    a, b = plow_analysis.parse_plow_samples([I89[0], I89[3]])
    assert plow_analysis.haversine_mi(a, b) == pytest.approx(34.8, abs=1.0)


def test_summary_mentions_rating_and_routes():
    plows = plow_analysis.parse_plow_samples(I89)
    rating, distribution = plow_analysis.rate(plows, "I-89", 60)
    summary = plow_analysis.summarize(rating, distribution)
    assert summary.startswith("Plow Truck Analysis for I-89:")
    assert f"Safety Rating: {rating.rating}/10" in summary
    assert "I-89: 3 plows" in summary
    assert "US-2: 1 plow\n" in summary + "\n"
