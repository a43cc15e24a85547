"""Adapters connecting nearby_transit to the outside world."""
