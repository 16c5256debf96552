"""Enrichment queue services."""
