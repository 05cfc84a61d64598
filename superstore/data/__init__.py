"""
Data Generation Module
"""
from .generators import SuperstoreGenerator

__all__ = [
    "SuperstoreGenerator",
]
