"""Catalog, generation, retrieval and pipeline services."""
