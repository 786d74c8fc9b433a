"""블록 매칭 핵심 모듈"""

from .errors import ConfigurationError
from .image import GridImage
from .boundary import (
    BoundaryCondition,
    ZeroFluxNeumannBoundary,
    ConstantBoundary,
    PeriodicBoundary,
    MirrorBoundary,
    make_boundary,
)
from .partition import WorkRange, partition_work
from .ncc_numba import ncc_from_sums, block_ncc, search_window_ncc, warmup_ncc_kernels
from .searcher import BlockCorrelationSearcher
from .accumulator import ResultAccumulator
from .block_matching import BlockMatcher, compute_block_matching
from .validator import validate_displacements, ValidationResult

__all__ = [
    'ConfigurationError',
    'GridImage',

    # Boundary
    'BoundaryCondition',
    'ZeroFluxNeumannBoundary',
    'ConstantBoundary',
    'PeriodicBoundary',
    'MirrorBoundary',
    'make_boundary',

    # Engine
    'WorkRange',
    'partition_work',
    'ncc_from_sums',
    'block_ncc',
    'search_window_ncc',
    'warmup_ncc_kernels',
    'BlockCorrelationSearcher',
    'ResultAccumulator',
    'BlockMatcher',
    'compute_block_matching',

    # Validation
    'validate_displacements',
    'ValidationResult',
]
