"""Adapters layer - implementations of the ports."""
