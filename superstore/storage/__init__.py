"""
Output Storage Module
"""
from .writer import DatabaseWriter, OutputWriter

__all__ = [
    "DatabaseWriter",
    "OutputWriter",
]
