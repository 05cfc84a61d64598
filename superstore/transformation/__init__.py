"""
Data Transformation Module

BatchTransformer lives in superstore.transformation.transformers; it depends
on the ingestion package, which itself imports the cleaners from here.
"""
from .cleaners import DataCleaner
from .deduplicator import DedupStats, MajorityVoteDeduplicator, deduplicate_products

__all__ = [
    "DataCleaner",
    "DedupStats",
    "MajorityVoteDeduplicator",
    "deduplicate_products",
]
