"""Catalog access and metadata resolution.

Submodules:
    catalog  -- httpx client for listing and detail pages
    listing  -- Listing page parser (candidates)
    search   -- Fuzzy scoring and ranking
    detail   -- Detail page enrichment with per-field fallback strategies
"""
