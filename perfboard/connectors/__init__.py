"""Data source connectors."""
