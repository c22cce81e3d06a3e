"""Plow coverage and road-safety rating from point samples of plow positions.

Unlike the weather paths, input here fails fast: one sample without usable
coordinates rejects the whole request with the sample's index, since the
geometry cannot be computed around it.
"""

import logging
import math
from datetime import datetime, timezone

from weatherbird.config import settings
from weatherbird.errors import InvalidInput
from weatherbird.schemas.plow import PlowDistribution, PlowLocation, SafetyRating
from weatherbird.services.units import km_to_mi

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
CLUSTER_LINK_MI = 2.0
MIN_FOOTPRINT_MI = 10.0
DEFAULT_ROUTE_LENGTH_MI = 100.0

# Maintained state highway miles for whole-region ratings
REGION_NETWORK_MI: dict[str, float] = {"vermont": 2700.0}

# (minimum active plows per mile, rating, label), best first
DENSITY_CUTS = [
    (0.1, 9, "excellent"),
    (0.05, 8, "good"),
    (0.02, 6, "moderate"),
    (0.01, 4, "minimal"),
]
FLOOR_RATING = (2, "poor")


def parse_plow_samples(raw: list[dict]) -> list[PlowLocation]:
    plows = []
    for i, sample in enumerate(raw):
        if not isinstance(sample, dict):
            raise InvalidInput(f"Plow at index {i} is not an object", index=i)
        lat, lon = sample.get("latitude"), sample.get("longitude")
        if lat is None or lon is None or lat == "" or lon == "":
            raise InvalidInput(f"Plow at index {i} is missing latitude or longitude", index=i)
        try:
            lat, lon = float(lat), float(lon)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Plow at index {i} has non-numeric latitude or longitude", index=i) from e
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise InvalidInput(f"Plow at index {i} has out-of-range coordinates ({lat}, {lon})", index=i)

        status = sample.get("status") or "active"
        if status not in ("active", "inactive"):
            raise InvalidInput(f"Plow at index {i} has unknown status '{status}'", index=i)
        try:
            plows.append(PlowLocation(
                id=str(sample.get("id") or f"plow-{i}"),
                latitude=lat,
                longitude=lon,
                route=sample.get("route"),
                direction=sample.get("direction"),
                timestamp=sample.get("timestamp") or datetime.now(timezone.utc),
                status=status,
            ))
        except ValueError as e:
            raise InvalidInput(f"Plow at index {i} is malformed: {e}", index=i) from e
    return plows


def haversine_mi(a: PlowLocation, b: PlowLocation) -> float:
    lat1, lon1, lat2, lon2 = map(math.radians, (a.latitude, a.longitude, b.latitude, b.longitude))
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    return km_to_mi(2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h)))


def _spanning_edges(plows: list[PlowLocation]) -> list[float]:
    """Edge lengths of the minimum spanning tree (Prim). Single-linkage gaps."""
    if len(plows) < 2:
        return []
    best = {i: haversine_mi(plows[0], p) for i, p in enumerate(plows) if i}
    edges = []
    while best:
        nxt = min(best, key=best.get)
        edges.append(best.pop(nxt))
        for i in best:
            best[i] = min(best[i], haversine_mi(plows[nxt], plows[i]))
    return edges


def footprint_mi(plows: list[PlowLocation]) -> float:
    """Diagonal of the samples' bounding box, floored so a tight cluster is not a tiny route."""
    if not plows:
        return MIN_FOOTPRINT_MI
    lats = [p.latitude for p in plows]
    lons = [p.longitude for p in plows]
    corner_a = PlowLocation(id="sw", latitude=min(lats), longitude=min(lons), timestamp=plows[0].timestamp)
    corner_b = PlowLocation(id="ne", latitude=max(lats), longitude=max(lons), timestamp=plows[0].timestamp)
    return max(MIN_FOOTPRINT_MI, haversine_mi(corner_a, corner_b))


def coverage_length_mi(plows: list[PlowLocation], route: str, route_length_mi: float | None) -> float:
    if route_length_mi is not None:
        if route_length_mi <= 0:
            raise InvalidInput("route_length_mi must be positive", field="route_length_mi")
        return route_length_mi
    if route.lower() in REGION_NETWORK_MI:
        return REGION_NETWORK_MI[route.lower()]
    return footprint_mi(plows) if plows else DEFAULT_ROUTE_LENGTH_MI


def rating_for_density(density: float, active: int) -> tuple[int, str]:
    if active == 0:
        return 1, "none"
    for cut, rating, label in DENSITY_CUTS:
        if density >= cut:
            return rating, label
    return FLOOR_RATING


def analyze_distribution(plows: list[PlowLocation]) -> PlowDistribution:
    active = [p for p in plows if p.status != "inactive"]
    routes: dict[str, int] = {}
    for p in plows:
        key = p.route or "Unknown"
        routes[key] = routes.get(key, 0) + 1

    edges = _spanning_edges(active)
    nearest = [
        min(haversine_mi(p, q) for j, q in enumerate(active) if j != i)
        for i, p in enumerate(active)
    ] if len(active) > 1 else []
    return PlowDistribution(
        total_plows=len(plows),
        active_plows=len(active),
        routes=routes,
        clusters=(1 + sum(1 for e in edges if e > CLUSTER_LINK_MI)) if active else 0,
        mean_spacing_mi=round(sum(nearest) / len(nearest), 2) if nearest else None,
        largest_gap_mi=round(max(edges), 2) if edges else None,
    )


def rate(
    plows: list[PlowLocation],
    route: str | None = None,
    route_length_mi: float | None = None,
) -> tuple[SafetyRating, PlowDistribution]:
    route = route or settings.default_region
    distribution = analyze_distribution(plows)
    active = distribution.active_plows
    length = coverage_length_mi([p for p in plows if p.status != "inactive"], route, route_length_mi)
    density = active / length
    rating, label = rating_for_density(density, active)

    reasoning, recommendations = _explain(route, rating, active, density)
    if distribution.largest_gap_mi is not None and distribution.largest_gap_mi > 5 * CLUSTER_LINK_MI:
        recommendations.append(
            f"Largest gap between plows is {distribution.largest_gap_mi:.1f} miles, expect unplowed stretches"
        )

    logger.info("Plow rating for %s: %d/10 (%s), %d active over %.1f mi", route, rating, label, active, length)
    safety = SafetyRating(
        route=route,
        route_length_mi=route_length_mi,
        coverage_length_mi=round(length, 2),
        plow_count=active,
        plow_density=round(density, 4),
        rating=rating,
        label=label,
        reasoning=reasoning,
        recommendations=recommendations,
    )
    return safety, distribution


def _explain(route: str, rating: int, count: int, density: float) -> tuple[str, list[str]]:
    plural = "s" if count != 1 else ""
    if count == 0:
        return (
            f"No active plows detected on {route}. Road conditions are likely hazardous and may not be maintained.",
            [
                "Avoid travel if possible",
                "Check road conditions before leaving",
                "Use extreme caution if travel is necessary",
                "Consider delaying travel until plows are active",
            ],
        )
    if rating >= 8:
        return (
            f"Excellent plow coverage on {route} with {count} active plow{plural} "
            f"({density:.3f} plows per mile). Roads are likely well-maintained.",
            ["Roads are likely in good condition", "Normal winter driving precautions apply"],
        )
    if rating >= 6:
        return (
            f"Moderate plow coverage on {route} with {count} active plow{plural} "
            f"({density:.3f} plows per mile). Some areas may have limited maintenance.",
            [
                "Exercise caution, especially on secondary roads",
                "Allow extra travel time",
                "Check specific route conditions before traveling",
            ],
        )
    return (
        f"Limited plow coverage on {route} with only {count} active plow{plural} "
        f"({density:.3f} plows per mile). Road conditions may be hazardous.",
        [
            "Avoid travel if possible",
            "Use extreme caution if travel is necessary",
            "Check road conditions frequently",
            "Consider alternative routes if available",
        ],
    )


def summarize(rating: SafetyRating, distribution: PlowDistribution) -> str:
    """Plain-text digest for downstream context assembly."""
    lines = [
        f"Plow Truck Analysis for {rating.route}:",
        f"Safety Rating: {rating.rating}/10 ({rating.label})",
        f"Active Plows: {rating.plow_count}",
        f"Plow Density: {rating.plow_density:.3f} plows per mile over {rating.coverage_length_mi:.1f} miles",
        f"Assessment: {rating.reasoning}",
        "Recommendations:",
    ]
    lines += [f"  {i}. {rec}" for i, rec in enumerate(rating.recommendations, start=1)]
    lines += [
        "Overall Distribution:",
        f"  Total Plows: {distribution.total_plows}",
        f"  Active Plows: {distribution.active_plows}",
        f"  Clusters: {distribution.clusters}",
    ]
    if distribution.largest_gap_mi is not None:
        lines.append(f"  Largest Gap: {distribution.largest_gap_mi:.1f} miles")
    if distribution.routes:
        lines.append("  By Route:")
        lines += [
            f"    - {route}: {count} plow{'s' if count != 1 else ''}"
            for route, count in distribution.routes.items()
        ]
    return "\n".join(lines)
