"""Protocols shared between application services and adapters."""
