"""Enrichment HTTP endpoints."""
