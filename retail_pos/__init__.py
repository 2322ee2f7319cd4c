"""Retail point-of-sale catalog costing and checkout settlement."""

__version__ = "0.1.0"
