"""Packaged resources (framework default configuration)."""
