"""Input dataset readers"""

from .readers import DatasetReader

__all__ = ['DatasetReader']
