"""Tranzy open-data API adapter."""

from nearby_transit.adapters.tranzy_api.tranzy_transit_repository import TranzyTransitRepository

__all__ = ["TranzyTransitRepository"]
