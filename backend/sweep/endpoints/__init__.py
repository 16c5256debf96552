"""Sweep HTTP endpoints."""
