"""
Data Ingestion Module
"""
from .batch_loader import BatchLoader, LoadedBatch, LoadReport, RejectedRecord

__all__ = [
    "BatchLoader",
    "LoadedBatch",
    "LoadReport",
    "RejectedRecord",
]
