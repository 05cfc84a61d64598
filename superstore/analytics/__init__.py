"""
Analytics Module
"""
from .intervals import CustomerType, ReorderAnalysis, ReorderIntervalAnalyzer
from .reports import build_reports

__all__ = [
    "CustomerType",
    "ReorderAnalysis",
    "ReorderIntervalAnalyzer",
    "build_reports",
]
