"""
경계 조건 모듈

블록/윈도우 순회 중 이미지 범위 밖 복셀 접근을 처리한다.
엔진은 특정 정책을 하드코딩하지 않고 BoundaryCondition 인스턴스를 주입받는다.

모든 정책은 축별로 분리 가능(separable)하므로 축마다 인덱스 벡터를
매핑한 뒤 np.ix_로 한 번에 gather한다.

지원 정책:
    - zero_flux_neumann (기본값): 가장 가까운 가장자리 값 복제
    - constant: 지정한 채움 값
    - periodic: 주기 반복
    - mirror: 가장자리 복셀을 반복하지 않는 반사
"""

import numpy as np
from typing import Sequence, Tuple, Union

from .errors import ConfigurationError


class BoundaryCondition:
    """경계 조건 기본 클래스"""

    name = "base"

    def map_axis(self, idx: np.ndarray, n: int) -> np.ndarray:
        """한 축의 인덱스를 [0, n) 범위로 매핑"""
        raise NotImplementedError

    def gather(self, data: np.ndarray,
               start: Sequence[int],
               shape: Sequence[int]) -> np.ndarray:
        """
        start(numpy 축 순서)에서 시작하는 shape 크기 블록을 float64로 추출

        Args:
            data: 이미지 배열
            start: 블록 시작 인덱스 (numpy 축 순서)
            shape: 블록 크기 (numpy 축 순서)

        Returns:
            C-contiguous float64 블록
        """
        if _is_inside(data.shape, start, shape):
            region = tuple(slice(s, s + n) for s, n in zip(start, shape))
            return np.ascontiguousarray(data[region], dtype=np.float64)

        axes = [
            self.map_axis(np.arange(s, s + n, dtype=np.int64), dim)
            for s, n, dim in zip(start, shape, data.shape)
        ]
        return np.ascontiguousarray(data[np.ix_(*axes)], dtype=np.float64)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ZeroFluxNeumannBoundary(BoundaryCondition):
    """범위 밖 인덱스를 가장 가까운 가장자리로 고정 (기본값)"""

    name = "zero_flux_neumann"

    def map_axis(self, idx: np.ndarray, n: int) -> np.ndarray:
        return np.clip(idx, 0, n - 1)


class PeriodicBoundary(BoundaryCondition):
    """주기 경계"""

    name = "periodic"

    def map_axis(self, idx: np.ndarray, n: int) -> np.ndarray:
        return np.mod(idx, n)


class MirrorBoundary(BoundaryCondition):
    """
    반사 경계 (가장자리 복셀 미반복)

    -1 → 1, n → n-2. 주기 2(n-1)로 임의 거리까지 반사한다.
    """

    name = "mirror"

    def map_axis(self, idx: np.ndarray, n: int) -> np.ndarray:
        if n == 1:
            return np.zeros_like(idx)
        period = 2 * (n - 1)
        idx = np.mod(np.abs(idx), period)
        return np.where(idx >= n, period - idx, idx)


class ConstantBoundary(BoundaryCondition):
    """범위 밖 복셀을 고정값으로 채움"""

    name = "constant"

    def __init__(self, value: float = 0.0):
        self.value = float(value)

    def map_axis(self, idx: np.ndarray, n: int) -> np.ndarray:
        return np.clip(idx, 0, n - 1)

    def gather(self, data: np.ndarray,
               start: Sequence[int],
               shape: Sequence[int]) -> np.ndarray:
        if _is_inside(data.shape, start, shape):
            return super().gather(data, start, shape)

        axes = []
        masks = []
        for s, n, dim in zip(start, shape, data.shape):
            idx = np.arange(s, s + n, dtype=np.int64)
            masks.append((idx >= 0) & (idx < dim))
            axes.append(self.map_axis(idx, dim))

        block = np.array(data[np.ix_(*axes)], dtype=np.float64)

        # 축별 유효 마스크의 외적 → 모든 축이 범위 안인 복셀만 유효
        valid = np.ones(tuple(shape), dtype=bool)
        for axis, mask in enumerate(masks):
            view_shape = [1] * len(masks)
            view_shape[axis] = -1
            valid &= mask.reshape(view_shape)
        block[~valid] = self.value
        return block

    def __repr__(self) -> str:
        return f"ConstantBoundary(value={self.value})"


_BOUNDARY_ALIASES = {
    'zero_flux_neumann': ZeroFluxNeumannBoundary,
    'replicate': ZeroFluxNeumannBoundary,
    'nearest': ZeroFluxNeumannBoundary,
    'periodic': PeriodicBoundary,
    'wrap': PeriodicBoundary,
    'mirror': MirrorBoundary,
    'reflect': MirrorBoundary,
    'constant': ConstantBoundary,
}


def make_boundary(policy: Union[str, BoundaryCondition, None] = None,
                  value: float = 0.0) -> BoundaryCondition:
    """
    경계 조건 생성

    Args:
        policy: 정책 이름, BoundaryCondition 인스턴스, 또는 None(기본값)
        value: 'constant' 정책의 채움 값

    Returns:
        BoundaryCondition 인스턴스
    """
    if policy is None:
        return ZeroFluxNeumannBoundary()
    if isinstance(policy, BoundaryCondition):
        return policy
    if not isinstance(policy, str):
        raise ConfigurationError(
            f"boundary must be a name or BoundaryCondition, got {type(policy).__name__}")

    key = policy.strip().lower()
    if key not in _BOUNDARY_ALIASES:
        raise ConfigurationError(
            f"Unknown boundary condition '{policy}', "
            f"expected one of {sorted(_BOUNDARY_ALIASES)}")

    cls = _BOUNDARY_ALIASES[key]
    if cls is ConstantBoundary:
        return ConstantBoundary(value)
    return cls()


def _is_inside(data_shape: Tuple[int, ...],
               start: Sequence[int],
               shape: Sequence[int]) -> bool:
    return all(s >= 0 and s + n <= dim
               for s, n, dim in zip(start, shape, data_shape))
