"""
Local pickup eligibility.

A customer can pick up in store when their ZIP centroid lies within
10 miles of the shop (great-circle distance). Only nearby Charlotte ZIPs
are known; anything else is simply not eligible.
"""

from __future__ import annotations
import math
from typing import Any, Dict, Optional, Tuple

from storefront.errors import StorefrontError

STORE_LAT = 35.2271  # 28212
STORE_LON = -80.8431
MAX_DISTANCE_MILES = 10
EARTH_RADIUS_MILES = 3959

ZIP_COORDINATES: Dict[str, Tuple[float, float]] = {
    "28212": (35.2271, -80.8431),
    "28213": (35.2940, -80.8648),
    "28214": (35.2826, -80.9590),
    "28215": (35.2485, -80.7374),
    "28216": (35.2635, -80.8951),
    "28217": (35.1849, -80.9173),
    "28226": (35.1349, -80.8473),
    "28269": (35.2968, -80.7349),
    "28262": (35.3029, -80.7646),
    "28205": (35.2207, -80.8046),
    "28206": (35.2435, -80.8273),
    "28208": (35.2268, -80.8784),
    "28210": (35.1491, -80.8593),
    "28211": (35.1849, -80.8173),
    "28270": (35.3474, -80.7349),
}


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def check_pickup_eligibility(zip_code: Any) -> Dict[str, Optional[Any]]:
    """Return {"eligible": bool, "distance": miles rounded to 0.1 or None}."""
    if zip_code is None or str(zip_code).strip() == "":
        raise StorefrontError("Zip code required")

    coords = ZIP_COORDINATES.get(str(zip_code).strip())
    if coords is None:
        return {"eligible": False, "distance": None}

    distance = distance_miles(STORE_LAT, STORE_LON, coords[0], coords[1])
    return {
        "eligible": distance <= MAX_DISTANCE_MILES,
        "distance": round(distance, 1),
    }
