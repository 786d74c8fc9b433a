"""
블록 상관 탐색기

특징점 1개에 대해:
    1. 물리 좌표를 고정/이동 이미지 인덱스로 각각 독립 매핑
    2. 이동 이미지 인덱스를 중심으로 1 + 2*search_radius 크기의 윈도우 구성
    3. 윈도우 내 후보 중심을 래스터 순서(x축이 가장 빠르게 변함)로 순회
    4. 후보마다 1 + 2*block_radius 크기 블록의 제곱 NCC 계산
    5. 최대 유사도 후보의 물리 좌표 - 원래 좌표 = 변위

블록/윈도우 형상과 평탄 오프셋은 실행당 1회 계산하여 모든 워커가
읽기 전용으로 공유한다.
"""

import numpy as np
from typing import Iterator, Sequence, Tuple

from .boundary import BoundaryCondition
from .image import GridImage
from .ncc_numba import search_window_ncc


class BlockCorrelationSearcher:
    """
    POI 단위 NCC 탐색 (순수 함수, 스레드 안전)

    반경은 물리 축 순서 (x, y[, z])로 받는다.
    """

    def __init__(self,
                 fixed_image: GridImage,
                 moving_image: GridImage,
                 block_radius: Sequence[int],
                 search_radius: Sequence[int],
                 boundary: BoundaryCondition):
        self.fixed_image = fixed_image
        self.moving_image = moving_image
        self.boundary = boundary

        self.block_radius = np.asarray(block_radius, dtype=np.int64)
        self.search_radius = np.asarray(search_radius, dtype=np.int64)

        # numpy 축 순서로 변환
        self._block_radius_np = self.block_radius[::-1].copy()
        self._search_radius_np = self.search_radius[::-1].copy()

        self.block_shape = tuple(int(r) * 2 + 1 for r in self._block_radius_np)
        self.window_shape = tuple(int(r) * 2 + 1 for r in self._search_radius_np)
        self.region_shape = tuple(
            b + w - 1 for b, w in zip(self.block_shape, self.window_shape))

        self.n_voxels = int(np.prod(self.block_shape))
        self.n_candidates = int(np.prod(self.window_shape))

        self.block_offsets = _flat_offsets(self.block_shape, self.region_shape)

        # 후보 k의 (윈도우 중심 기준 오프셋, region 평탄 오프셋)
        candidates = list(self.iter_candidates())
        self.window_offsets = np.array([offset for offset, _ in candidates], dtype=np.int64)
        self.candidate_offsets = np.array([flat for _, flat in candidates], dtype=np.int64)

    def iter_candidates(self) -> Iterator[Tuple[np.ndarray, int]]:
        """
        (후보 오프셋, 평탄 오프셋) 쌍을 래스터 순서로 생성

        후보 오프셋은 물리 축 순서의 윈도우 중심 기준 상대 인덱스이며
        x축이 가장 빠르게 변한다. 평탄 오프셋은 region 내 후보 블록 시작점.
        """
        for position in np.ndindex(*self.window_shape):
            offset = np.array(position[::-1], dtype=np.int64) - self.search_radius
            yield offset, int(np.ravel_multi_index(position, self.region_shape))

    def search(self, point: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        단일 특징점 탐색

        Args:
            point: 물리 좌표 (물리 축 순서)

        Returns:
            (displacement, similarity)
        """
        fixed_index = self.fixed_image.transform_physical_point_to_index(point)
        moving_index = self.moving_image.transform_physical_point_to_index(point)

        fixed_np = fixed_index[::-1]
        moving_np = moving_index[::-1]

        ref_block = self.boundary.gather(
            self.fixed_image.data,
            fixed_np - self._block_radius_np,
            self.block_shape).ravel()

        region = self.boundary.gather(
            self.moving_image.data,
            moving_np - self._search_radius_np - self._block_radius_np,
            self.region_shape).ravel()

        best_k, similarity = search_window_ncc(
            ref_block, region, self.block_offsets, self.candidate_offsets)

        if best_k < 0:
            # 모든 후보 점수가 NaN (입력에 NaN/inf 포함)
            return np.full(len(point), np.nan, dtype=np.float64), 0.0

        winner = moving_index + self.window_offsets[best_k]
        new_location = self.moving_image.transform_index_to_physical_point(winner)
        displacement = new_location - np.asarray(point, dtype=np.float64)

        return displacement, float(similarity)


def _flat_offsets(shape: Tuple[int, ...], region_shape: Tuple[int, ...]) -> np.ndarray:
    """shape 내 모든 위치의 region 평탄 오프셋 (C 순서 = 래스터 순서)"""
    positions = np.indices(shape).reshape(len(shape), -1)
    return np.ravel_multi_index(positions, region_shape).astype(np.int64)
