"""
Searchable Visibility Engine

Tracks how often AI-generated answers cite a web domain:
1. Extracts citations from raw AI responses
2. Normalizes URLs into canonical comparison keys
3. Aggregates per-domain citation signals
4. Computes the 0-100 Visibility Score with run-over-run deltas
5. Measures competitor overlap and share of voice across shared queries
"""

__version__ = "0.1.0"
