from typing import Any, Mapping, Optional

import structlog

from ..models.article import GeoContext

logger = structlog.get_logger(__name__)

DEFAULT_COUNTRY = "US"

# Lowercase name or postal abbreviation -> canonical state name
STATE_NAMES = {
    "california": "California", "ca": "California",
    "new york": "New York", "ny": "New York",
    "texas": "Texas", "tx": "Texas",
    "florida": "Florida", "fl": "Florida",
    "illinois": "Illinois", "il": "Illinois",
    "pennsylvania": "Pennsylvania", "pa": "Pennsylvania",
    "ohio": "Ohio", "oh": "Ohio",
    "georgia": "Georgia", "ga": "Georgia",
    "north carolina": "North Carolina", "nc": "North Carolina",
    "michigan": "Michigan", "mi": "Michigan",
}


def _text(value: Any) -> str:
    return str(value or "").strip()


def geo_from_mapping(geo: Mapping[str, Any]) -> GeoContext:
    """Build a GeoContext from a structured object such as {"city", "region", "country"}."""
    country = _text(geo.get("country")) or _text(geo.get("countryCode"))
    country_code = _text(geo.get("countryCode")) or _text(geo.get("country"))
    return GeoContext(
        city=_text(geo.get("city")),
        region=_text(geo.get("region")) or _text(geo.get("state")),
        country=country,
        country_code=country_code,
    )


def parse_location(location: str) -> Optional[GeoContext]:
    """
    Parse "City", "City, Region" or a bare state name into a GeoContext.

    Free-text locations are assumed to be in the default country.
    """
    location = _text(location)
    if not location:
        return None

    parts = [part.strip() for part in location.split(",")]
    city = parts[0] if parts else ""
    region = parts[1] if len(parts) > 1 else ""

    if not region and len(parts) == 1:
        state = STATE_NAMES.get(parts[0].lower())
        if state:
            city = ""
            region = state

    return GeoContext(city=city, region=region, country=DEFAULT_COUNTRY, country_code=DEFAULT_COUNTRY)


def resolve_geo(geo: Optional[Mapping[str, Any]] = None, location: Optional[str] = None) -> Optional[GeoContext]:
    """Structured geography wins over a free-text location string."""
    if isinstance(geo, Mapping):
        resolved = geo_from_mapping(geo)
    elif isinstance(location, str):
        resolved = parse_location(location)
    else:
        resolved = None

    if resolved is not None and resolved.is_empty:
        resolved = None

    logger.debug("geo_resolved", geo=None if resolved is None else resolved.cache_fragment())
    return resolved
