"""Stock market simulator with order matching, Redis-backed state and HTTP metrics."""

__version__ = "0.1.0"