"""Favorite route domain model.

Favorites arrive either as plain route names or as route references
(``{"routeName": "24B"}``). Both are normalized to route names once, at the
pipeline boundary.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteNameFavorite:
    """A favorite given only by its route name."""

    name: str


@dataclass(frozen=True)
class RouteRefFavorite:
    """A favorite given as a reference object carrying the route name."""

    route_name: str


FavoriteRoute = RouteNameFavorite | RouteRefFavorite


def parse_favorite_route(entry: Any) -> FavoriteRoute | None:
    """Parse one raw favorite entry, returning None if it is not recognized."""
    if isinstance(entry, RouteNameFavorite | RouteRefFavorite):
        return entry
    if isinstance(entry, str):
        name = entry.strip()
        return RouteNameFavorite(name) if name else None
    if isinstance(entry, Mapping):
        route_name = entry.get("routeName", entry.get("route_name"))
        if isinstance(route_name, str | int) and str(route_name).strip():
            return RouteRefFavorite(str(route_name).strip())
    return None


def favorite_route_name(favorite: FavoriteRoute) -> str:
    """Return the route name a favorite refers to."""
    if isinstance(favorite, RouteNameFavorite):
        return favorite.name
    return favorite.route_name


def normalize_favorite_routes(entries: Iterable[Any]) -> list[str]:
    """Normalize raw favorite entries to distinct route names, keeping first-seen order."""
    names: list[str] = []
    for entry in entries:
        favorite = parse_favorite_route(entry)
        if favorite is None:
            logger.warning(f"Ignoring unrecognized favorite route entry: {entry!r}")
            continue
        name = favorite_route_name(favorite)
        if name not in names:
            names.append(name)
    return names
