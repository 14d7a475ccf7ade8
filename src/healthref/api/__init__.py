"""HTTP API for condition analysis."""
