"""Sweep services."""
