"""Chai Vision - sales aggregation, target tracking and growth analysis"""

__version__ = "1.0.0"
