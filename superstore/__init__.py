"""
Superstore Sales Analytics

Batch pipeline over the Superstore retail dataset: product deduplication,
reorder-interval analysis and aggregate reports.
"""

__version__ = "1.0.0"
