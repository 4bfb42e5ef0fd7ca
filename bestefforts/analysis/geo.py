"""
Great-circle distance helpers for GPS positions.
"""

import math
from typing import List, Optional, Sequence, Tuple

Position = Tuple[float, float]

EARTH_RADIUS_M = 6371000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_M * c


def cumulative_distances(positions: Sequence[Optional[Position]]) -> List[float]:
    """
    Cumulative distance along a track of positions.

    Missing positions contribute no distance; the next present position
    is measured from the last known one.

    Returns:
        List of cumulative meters, same length as positions
    """
    total = 0.0
    last: Optional[Position] = None
    result = []

    for position in positions:
        if position is not None:
            if last is not None:
                total += haversine_distance(last[0], last[1], position[0], position[1])
            last = position
        result.append(total)

    return result
