"""
External Source Clients
"""

from .open_data_client import OpenDataClient, build_category_filter

__all__ = ["OpenDataClient", "build_category_filter"]
