"""VSIBL pricing core — versioned, deterministic token pricing for ad campaigns."""

__version__ = "0.1.0"
