"""
Growth chart reference data.
"""

from .who_2006 import (
    LMS_TABLES,
    PERCENTILE_BANDS,
    percentile_table,
)

__all__ = [
    "LMS_TABLES",
    "PERCENTILE_BANDS",
    "percentile_table",
]
