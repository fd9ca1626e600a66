"""
Bike Trip Context Aggregation

A batch pipeline that enriches bike share trips with start/end ZIP codes,
borough and neighborhood labels and daily weather, then counts trips per
group of contextual attributes.
"""

__version__ = "1.0.0"
__author__ = "Data Engineering Team"
