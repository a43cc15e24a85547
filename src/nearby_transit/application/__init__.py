"""Application layer - the matching pipeline and its resilience layer."""
