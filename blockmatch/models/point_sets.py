"""
블록 매칭 결과 데이터 모델
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple
import numpy as np


@dataclass
class PointSet:
    """
    점 집합 + 점별 데이터 (인덱스 정렬)

    points: (N, D) 물리 좌표
    point_data: (N, ...) 점별 데이터 (변위 벡터 또는 유사도 스칼라)
    """
    points: np.ndarray
    point_data: np.ndarray
    name: str = ""

    def __post_init__(self):
        # 호출자 배열은 건드리지 않고 복사본을 잠금
        self.points = np.array(self.points, dtype=np.float64)
        self.point_data = np.array(self.point_data, dtype=np.float64)
        if len(self.points) != len(self.point_data):
            raise ValueError(
                f"points/point_data length mismatch: "
                f"{len(self.points)} != {len(self.point_data)}")
        self.points.setflags(write=False)
        self.point_data.setflags(write=False)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def n_points(self) -> int:
        return len(self.points)

    @property
    def dimension(self) -> int:
        return self.points.shape[1] if self.points.ndim > 1 else 1

    def get_point(self, idx: int) -> np.ndarray:
        return self.points[idx]

    def get_point_data(self, idx: int):
        return self.point_data[idx]


@dataclass
class BlockMatchingResult:
    """블록 매칭 전체 결과 (Displacements, Similarities)"""
    displacements: PointSet
    similarities: PointSet

    block_radius: Tuple[int, ...] = (2, 2)
    search_radius: Tuple[int, ...] = (3, 3)
    n_workers: int = 1
    boundary: str = "zero_flux_neumann"
    processing_time: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_points(self) -> int:
        return self.displacements.n_points

    @property
    def points(self) -> np.ndarray:
        return self.displacements.points

    @property
    def displacement_vectors(self) -> np.ndarray:
        return self.displacements.point_data

    @property
    def similarity_values(self) -> np.ndarray:
        return self.similarities.point_data

    @property
    def displacement_magnitude(self) -> np.ndarray:
        return np.linalg.norm(self.displacement_vectors, axis=1)

    @property
    def mean_similarity(self) -> float:
        if self.n_points == 0:
            return 0.0
        return float(np.mean(self.similarity_values))

    @property
    def min_similarity(self) -> float:
        if self.n_points == 0:
            return 0.0
        return float(np.min(self.similarity_values))

    @property
    def max_similarity(self) -> float:
        if self.n_points == 0:
            return 0.0
        return float(np.max(self.similarity_values))

    @property
    def metadata(self) -> Dict[str, Any]:
        """메타데이터 반환"""
        return {
            'block_radius': list(self.block_radius),
            'search_radius': list(self.search_radius),
            'n_workers': self.n_workers,
            'boundary': self.boundary,
            'processing_time': self.processing_time,
            'n_points': self.n_points,
        }

    def describe(self) -> str:
        lines = [
            f"BlockRadius: {list(self.block_radius)}",
            f"SearchRadius: {list(self.search_radius)}",
            f"PointsCount: {self.n_points}",
            f"Workers: {self.n_workers}",
            f"Boundary: {self.boundary}",
            f"MeanSimilarity: {self.mean_similarity:.4f}",
        ]
        return "\n".join(lines)
