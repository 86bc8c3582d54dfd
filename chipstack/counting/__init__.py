"""
Chip counting by vertical periodicity.
"""

from .periodicity import (
    CountEstimate,
    centerline_signal,
    edge_strength,
    autocorrelation,
    find_peak_lag,
    count_chips,
)

__all__ = [
    'CountEstimate',
    'centerline_signal',
    'edge_strength',
    'autocorrelation',
    'find_peak_lag',
    'count_chips',
]
