"""블록 매칭 데이터 모델"""

from .point_sets import PointSet, BlockMatchingResult

__all__ = ['PointSet', 'BlockMatchingResult']
