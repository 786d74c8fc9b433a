"""
결과 누적기 / 출력 조립기

실행 1회 동안만 존재하는 두 평탄 배열(변위, 유사도)을 소유한다.
    - allocate: 검증 후 길이 N 배열 할당 (초기화하지 않음)
    - store:    워커가 자신의 구간 인덱스에만 기록 (구간이 서로소이므로 락 불필요)
    - assemble: join 이후 단일 스레드에서 두 PointSet 생성, 배열 해제

store는 인덱스당 정확히 1회만 허용되며, assemble은 모든 인덱스가
기록되었는지 확인한다.
"""

import numpy as np
from typing import Optional, Tuple

from ..models.point_sets import PointSet


class ResultAccumulator:
    """실행 단위 결과 버퍼"""

    def __init__(self):
        self._displacements: Optional[np.ndarray] = None
        self._similarities: Optional[np.ndarray] = None
        self._written: Optional[np.ndarray] = None

    @property
    def is_allocated(self) -> bool:
        return self._displacements is not None

    def allocate(self, n_points: int, dimension: int):
        if self.is_allocated:
            raise RuntimeError("결과 버퍼가 이미 할당되어 있습니다")
        self._displacements = np.empty((n_points, dimension), dtype=np.float64)
        self._similarities = np.empty(n_points, dtype=np.float64)
        self._written = np.zeros(n_points, dtype=np.bool_)

    def store(self, idx: int, displacement: np.ndarray, similarity: float):
        """인덱스 idx 결과 기록 (담당 워커만 호출)"""
        if self._written[idx]:
            raise RuntimeError(f"인덱스 {idx} 결과가 중복 기록되었습니다")
        self._displacements[idx] = displacement
        self._similarities[idx] = similarity
        self._written[idx] = True

    def assemble(self, feature_points: np.ndarray) -> Tuple[PointSet, PointSet]:
        """
        출력 조립 (join 이후 단일 스레드)

        Args:
            feature_points: (N, D) 입력 특징점 (복사하여 사용)

        Returns:
            (Displacements, Similarities), 입력 순서와 인덱스 정렬
        """
        if not self.is_allocated:
            raise RuntimeError("결과 버퍼가 할당되지 않았습니다")

        missing = np.flatnonzero(~self._written)
        if len(missing) > 0:
            self.release()
            raise RuntimeError(
                f"{len(missing)}개 인덱스 결과 누락 (첫 번째: {int(missing[0])})")

        # PointSet이 복사본을 잠그므로 버퍼는 바로 해제 가능
        displacements = PointSet(
            points=feature_points,
            point_data=self._displacements,
            name="Displacements")
        similarities = PointSet(
            points=feature_points,
            point_data=self._similarities,
            name="Similarities")

        self.release()
        return displacements, similarities

    def release(self):
        """버퍼 해제 (실행 간 잔여 상태 없음)"""
        self._displacements = None
        self._similarities = None
        self._written = None
