"""Hotel availability search: cached hotel-code lookup and batched upstream fan-out."""

__version__ = "0.1.0"
