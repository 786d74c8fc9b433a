"""희소 특징점 병렬 블록 매칭 (NCC) 패키지"""

from .models import PointSet, BlockMatchingResult
from .core import (
    ConfigurationError,
    GridImage,
    BoundaryCondition,
    ZeroFluxNeumannBoundary,
    ConstantBoundary,
    PeriodicBoundary,
    MirrorBoundary,
    make_boundary,
    WorkRange,
    partition_work,
    BlockCorrelationSearcher,
    ResultAccumulator,
    BlockMatcher,
    compute_block_matching,
    warmup_ncc_kernels,
    validate_displacements,
    ValidationResult,
)
from .config import SettingsManager
from .io import ResultExporter

__version__ = "1.0.0"

__all__ = [
    # Models
    'PointSet',
    'BlockMatchingResult',

    # Core
    'ConfigurationError',
    'GridImage',
    'BlockMatcher',
    'compute_block_matching',
    'BlockCorrelationSearcher',
    'ResultAccumulator',
    'WorkRange',
    'partition_work',
    'warmup_ncc_kernels',

    # Boundary
    'BoundaryCondition',
    'ZeroFluxNeumannBoundary',
    'ConstantBoundary',
    'PeriodicBoundary',
    'MirrorBoundary',
    'make_boundary',

    # Validation
    'validate_displacements',
    'ValidationResult',

    # Config / IO
    'SettingsManager',
    'ResultExporter',
]
