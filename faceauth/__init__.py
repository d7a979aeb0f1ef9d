"""Face enrollment and verification matching engine."""

__version__ = "0.1.0"
