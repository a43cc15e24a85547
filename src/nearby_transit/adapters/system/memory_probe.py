"""Memory pressure of the host, as fed into performance checks."""

import psutil


def system_memory_usage() -> float:
    """Return used system memory as a fraction in [0, 1]."""
    return psutil.virtual_memory().percent / 100
