"""
Diversifier: uncorrelated asset selection from historical price series.

This module provides:
- Pearson correlation between position-aligned price series
- Pairwise correlation matrix over an ordered asset universe
- Two selection strategies: Top-K pair ranking and greedy uncorrelated selection
- Rate-limited, cached price fetching from CoinGecko

CLI Commands:
    python -m diversifier rank --config config/diversifier.example.yaml
    python -m diversifier uncorrelated --config config/diversifier.example.yaml
"""

__version__ = "0.1.0"
