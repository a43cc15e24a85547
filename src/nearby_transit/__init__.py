"""Nearby transit: live vehicles matched to the stations around a rider."""

__version__ = "0.1.0"
