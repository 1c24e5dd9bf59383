"""Aggregation domain module.

Fuses heterogeneous judge evaluations into one score per execution.

Key Components:
- Score collection, weighting and outlier handling
- Aggregation, consensus and conflict resolution
- Confidence calibration and quality validation
"""
