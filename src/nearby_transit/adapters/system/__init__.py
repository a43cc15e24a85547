"""Host system adapters."""

from nearby_transit.adapters.system.memory_probe import system_memory_usage

__all__ = ["system_memory_usage"]
