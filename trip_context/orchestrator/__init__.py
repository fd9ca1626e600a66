"""Pipeline orchestration"""

from .aggregation_pipeline import AggregationPipeline, AggregationResult

__all__ = ['AggregationPipeline', 'AggregationResult']
