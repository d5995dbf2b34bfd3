"""Command line interface for dag-ucan."""
