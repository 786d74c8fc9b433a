"""
격자 이미지 및 물리 좌표 ↔ 인덱스 변환

좌표 규약:
    - data: numpy 축 순서 ([z,] y, x)
    - origin / spacing / direction / 인덱스 / 물리 좌표: 물리 축 순서 (x, y[, z])

    physical = origin + direction · diag(spacing) · index
    index    = floor(inv(direction · diag(spacing)) · (physical - origin) + 0.5)

두 이미지는 해상도와 방향이 서로 다를 수 있으므로 특징점 매핑은
이미지마다 독립적으로 계산한다.
"""

import numpy as np
import cv2
from typing import Optional, Sequence

from .errors import ConfigurationError


class GridImage:
    """물리 좌표계 정보를 가진 스칼라 격자 이미지 (읽기 전용)"""

    def __init__(self,
                 data: np.ndarray,
                 origin: Optional[Sequence[float]] = None,
                 spacing: Optional[Sequence[float]] = None,
                 direction: Optional[np.ndarray] = None):
        if data is None:
            raise ConfigurationError("이미지가 None입니다")

        data = np.asarray(data)
        if data.ndim < 1 or data.size == 0:
            raise ConfigurationError(f"빈 이미지입니다: shape={data.shape}")

        ndim = data.ndim
        self.data = data

        self.origin = self._as_vector(origin, ndim, 0.0, 'origin')
        self.spacing = self._as_vector(spacing, ndim, 1.0, 'spacing')
        if np.any(self.spacing <= 0):
            raise ConfigurationError(f"spacing must be positive, got {self.spacing}")

        if direction is None:
            self.direction = np.eye(ndim, dtype=np.float64)
        else:
            self.direction = np.array(direction, dtype=np.float64)
            if self.direction.shape != (ndim, ndim):
                raise ConfigurationError(
                    f"direction must be {ndim}x{ndim}, got {self.direction.shape}")

        self._index_to_physical = self.direction @ np.diag(self.spacing)
        try:
            self._physical_to_index = np.linalg.inv(self._index_to_physical)
        except np.linalg.LinAlgError:
            raise ConfigurationError("direction matrix is singular")

        for arr in (self.origin, self.spacing, self.direction):
            arr.setflags(write=False)

    @classmethod
    def from_image(cls, image: np.ndarray, **geometry) -> 'GridImage':
        """BGR 컬러 이미지는 그레이스케일로 변환 후 생성"""
        return cls(_to_gray(image), **geometry)

    @staticmethod
    def _as_vector(value, ndim: int, fill: float, label: str) -> np.ndarray:
        if value is None:
            return np.full(ndim, fill, dtype=np.float64)
        vec = np.array(value, dtype=np.float64).reshape(-1)
        if vec.size == 1:
            return np.full(ndim, vec[0], dtype=np.float64)
        if vec.size != ndim:
            raise ConfigurationError(
                f"{label} must have {ndim} components, got {vec.size}")
        return vec

    @property
    def ndim(self) -> int:
        return self.data.ndim

    @property
    def size(self) -> np.ndarray:
        """물리 축 순서의 이미지 크기"""
        return np.array(self.data.shape[::-1], dtype=np.int64)

    def transform_physical_point_to_index(self, point: Sequence[float]) -> np.ndarray:
        """물리 좌표 → 정수 인덱스 (물리 축 순서, round-half-up)"""
        point = np.asarray(point, dtype=np.float64)
        continuous = self._physical_to_index @ (point - self.origin)
        return np.floor(continuous + 0.5).astype(np.int64)

    def transform_index_to_physical_point(self, index: Sequence[int]) -> np.ndarray:
        """정수 인덱스 (물리 축 순서) → 물리 좌표"""
        index = np.asarray(index, dtype=np.float64)
        return self.origin + self._index_to_physical @ index

    def is_inside(self, index: Sequence[int]) -> bool:
        index = np.asarray(index, dtype=np.int64)
        return bool(np.all(index >= 0) and np.all(index < self.size))

    def __repr__(self) -> str:
        return (f"GridImage(shape={self.data.shape}, dtype={self.data.dtype}, "
                f"origin={self.origin.tolist()}, spacing={self.spacing.tolist()})")


def as_grid_image(image, label: str) -> GridImage:
    """GridImage 또는 numpy 배열을 GridImage로 정규화"""
    if image is None:
        raise ConfigurationError(f"필수 입력 누락: {label}")
    if isinstance(image, GridImage):
        return image
    return GridImage(image)


def _to_gray(img: np.ndarray) -> np.ndarray:
    """그레이스케일 변환"""
    if img is None:
        raise ConfigurationError("이미지가 None입니다")
    if len(img.shape) == 3 and img.shape[2] in (3, 4):
        code = cv2.COLOR_BGR2GRAY if img.shape[2] == 3 else cv2.COLOR_BGRA2GRAY
        return cv2.cvtColor(img, code)
    return img
