"""
블록 매칭 (NCC) 메인 모듈

희소 특징점 집합에 대해 고정 이미지 블록과 이동 이미지 윈도우 내 후보 블록
간 제곱 NCC를 계산하여 정수 격자 변위와 유사도를 구한다.

실행 흐름 (fork-join):
    1. 입력 검증 (실패 시 ConfigurationError, 워커 디스패치 전)
    2. 결과 버퍼 할당
    3. 특징점 인덱스를 W개 연속 구간으로 분할
    4. ThreadPoolExecutor로 구간별 워커 실행 (Numba 커널은 nogil)
    5. 단일 join 후 Displacements / Similarities 조립, 버퍼 해제

상태 전이:
    Idle → Validated → Partitioned → Running → Joined → Assembled → Idle
    Failed는 Idle/Validated에서 설정 오류 시에만 도달

결과는 워커 수와 무관하게 비트 단위로 동일하다.
"""

import numpy as np
from typing import Callable, Optional, Sequence, Tuple, Union
from concurrent.futures import ThreadPoolExecutor, as_completed
import time
import os

from .errors import ConfigurationError
from .image import GridImage, as_grid_image
from .boundary import BoundaryCondition, make_boundary
from .partition import WorkRange, partition_work
from .searcher import BlockCorrelationSearcher
from .accumulator import ResultAccumulator
from ..models.point_sets import PointSet, BlockMatchingResult
from ..utils.logger import logger

_DEFAULT_BLOCK_RADIUS = 2
_DEFAULT_SEARCH_RADIUS = 3

_MATCHER_KEYS = ('block_radius', 'search_radius', 'n_workers',
                 'boundary', 'boundary_value')

# 실행 상태
STATE_IDLE = 'Idle'
STATE_VALIDATED = 'Validated'
STATE_PARTITIONED = 'Partitioned'
STATE_RUNNING = 'Running'
STATE_JOINED = 'Joined'
STATE_ASSEMBLED = 'Assembled'
STATE_FAILED = 'Failed'

RadiusType = Union[int, Sequence[int]]


class BlockMatcher:
    """
    병렬 블록 매칭 엔진

    Usage:
        matcher = BlockMatcher(block_radius=2, search_radius=3, n_workers=4)
        result = matcher.match(fixed_image, moving_image, feature_points)
        result.displacements.point_data   # (N, D)
        result.similarities.point_data    # (N,)
    """

    def __init__(self,
                 block_radius: RadiusType = _DEFAULT_BLOCK_RADIUS,
                 search_radius: RadiusType = _DEFAULT_SEARCH_RADIUS,
                 n_workers: Optional[int] = None,
                 boundary: Union[str, BoundaryCondition, None] = None,
                 boundary_value: float = 0.0):
        """
        Args:
            block_radius: 블록 반경 (정수 또는 물리 축 순서 축별 값)
            search_radius: 탐색 반경 (정수 또는 물리 축 순서 축별 값)
            n_workers: 워커 수 (None = CPU 코어 수 - 1)
            boundary: 범위 밖 접근 정책 (이름 또는 BoundaryCondition)
            boundary_value: 'constant' 정책의 채움 값
        """
        self.block_radius = _check_radius(block_radius, 'block_radius')
        self.search_radius = _check_radius(search_radius, 'search_radius')

        if n_workers is None:
            n_workers = max(1, (os.cpu_count() or 1) - 1)
        if isinstance(n_workers, bool) or not isinstance(n_workers, (int, np.integer)) \
                or n_workers < 1:
            raise ConfigurationError(
                f"n_workers must be a positive integer, got {n_workers!r}")
        self.n_workers = int(n_workers)

        self.boundary = make_boundary(boundary, boundary_value)
        self.state = STATE_IDLE

    @classmethod
    def from_settings(cls, settings) -> 'BlockMatcher':
        """SettingsManager(또는 dict)의 매칭 파라미터로 생성"""
        if hasattr(settings, 'get_matcher_params'):
            params = settings.get_matcher_params()
        else:
            # 검증/내보내기 키는 무시
            params = {k: settings[k] for k in _MATCHER_KEYS if k in settings}
            for key in ('block_radius', 'search_radius'):
                if isinstance(params.get(key), list):
                    params[key] = tuple(params[key])
        return cls(**params)

    # ===== 메인 실행 =====

    def match(self,
              fixed_image: Union[GridImage, np.ndarray],
              moving_image: Union[GridImage, np.ndarray],
              feature_points: Union[PointSet, np.ndarray, Sequence],
              progress_callback: Optional[Callable[[int, int], None]] = None
              ) -> BlockMatchingResult:
        """
        블록 매칭 실행

        Args:
            fixed_image: 고정(참조) 이미지
            moving_image: 이동(변형) 이미지
            feature_points: (N, D) 물리 좌표 특징점
            progress_callback: 진행 콜백 함수 (current, total)

        Returns:
            BlockMatchingResult (Displacements, Similarities)

        Raises:
            ConfigurationError: 특징점 0개 또는 필수 입력 누락 등
        """
        start_time = time.time()
        self._set_state(STATE_IDLE)

        try:
            fixed, moving, points, block_radius, search_radius = self._validate(
                fixed_image, moving_image, feature_points)
        except ConfigurationError as e:
            self._set_state(STATE_FAILED)
            logger.error(f"블록 매칭 설정 오류: {e}")
            raise

        self._set_state(STATE_VALIDATED)

        n_points, dimension = points.shape
        logger.info(f"블록 매칭 시작: {n_points} POIs, dim={dimension}, "
                     f"block_radius={list(block_radius)}, "
                     f"search_radius={list(search_radius)}, "
                     f"workers={self.n_workers}, boundary={self.boundary.name}")

        if self.n_workers > n_points:
            logger.warning(f"워커 수({self.n_workers})가 특징점 수({n_points})보다 많음 "
                            f"(빈 구간 워커 발생)")

        accumulator = ResultAccumulator()
        accumulator.allocate(n_points, dimension)

        ranges = partition_work(n_points, self.n_workers)
        self._set_state(STATE_PARTITIONED)
        for work_range in ranges:
            logger.debug(f"  {work_range}")

        searcher = BlockCorrelationSearcher(
            fixed, moving, block_radius, search_radius, self.boundary)

        if progress_callback:
            progress_callback(0, n_points)

        self._set_state(STATE_RUNNING)
        try:
            self._run_workers(searcher, points, ranges, accumulator,
                              n_points, progress_callback)
        except Exception:
            accumulator.release()
            self._set_state(STATE_IDLE)
            raise
        self._set_state(STATE_JOINED)

        displacements, similarities = accumulator.assemble(points)
        self._set_state(STATE_ASSEMBLED)

        processing_time = time.time() - start_time

        result = BlockMatchingResult(
            displacements=displacements,
            similarities=similarities,
            block_radius=tuple(int(r) for r in block_radius),
            search_radius=tuple(int(r) for r in search_radius),
            n_workers=self.n_workers,
            boundary=self.boundary.name,
            processing_time=processing_time,
        )

        if progress_callback:
            progress_callback(n_points, n_points)

        logger.info(f"블록 매칭 완료: {n_points} POIs, "
                     f"mean_similarity={result.mean_similarity:.4f}, "
                     f"{processing_time:.3f}s "
                     f"({processing_time/n_points*1000:.2f}ms/POI)")

        self._set_state(STATE_IDLE)
        return result

    def _run_workers(self, searcher, points, ranges, accumulator,
                     n_points, progress_callback):
        """고정 워커 풀 fork-join: 구간당 1개 작업, 단일 join"""
        completed = 0
        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            futures = {
                executor.submit(_process_range, searcher, points, work_range, accumulator):
                    work_range
                for work_range in ranges
            }

            for future in as_completed(futures):
                work_range = future.result()
                completed += work_range.count
                if progress_callback and not work_range.is_empty:
                    progress_callback(completed, n_points)

    # ===== 검증 =====

    def _validate(self, fixed_image, moving_image, feature_points
                  ) -> Tuple[GridImage, GridImage, np.ndarray, np.ndarray, np.ndarray]:
        fixed = as_grid_image(fixed_image, 'FixedImage')
        moving = as_grid_image(moving_image, 'MovingImage')
        points = _as_points(feature_points)

        if fixed.ndim != moving.ndim:
            raise ConfigurationError(
                f"FixedImage/MovingImage 차원 불일치: {fixed.ndim} != {moving.ndim}")

        dimension = fixed.ndim
        if points.shape[1] != dimension:
            raise ConfigurationError(
                f"특징점 차원({points.shape[1]})이 이미지 차원({dimension})과 다릅니다")

        block_radius = _expand_radius(self.block_radius, dimension, 'block_radius')
        search_radius = _expand_radius(self.search_radius, dimension, 'search_radius')

        return fixed, moving, points, block_radius, search_radius

    def _set_state(self, state: str):
        logger.debug(f"상태 전이: {self.state} → {state}")
        self.state = state

    def describe(self) -> str:
        return (f"BlockRadius: {_radius_repr(self.block_radius)}\n"
                f"SearchRadius: {_radius_repr(self.search_radius)}\n"
                f"Workers: {self.n_workers}\n"
                f"Boundary: {self.boundary!r}\n"
                f"State: {self.state}")

    def __repr__(self) -> str:
        return (f"BlockMatcher(block_radius={_radius_repr(self.block_radius)}, "
                f"search_radius={_radius_repr(self.search_radius)}, "
                f"n_workers={self.n_workers}, boundary={self.boundary!r})")


def compute_block_matching(fixed_image, moving_image, feature_points,
                           block_radius: RadiusType = _DEFAULT_BLOCK_RADIUS,
                           search_radius: RadiusType = _DEFAULT_SEARCH_RADIUS,
                           n_workers: Optional[int] = None,
                           boundary: Union[str, BoundaryCondition, None] = None,
                           boundary_value: float = 0.0,
                           progress_callback: Optional[Callable[[int, int], None]] = None
                           ) -> BlockMatchingResult:
    """
    블록 매칭 단일 호출 인터페이스

    BlockMatcher(...).match(...)와 동일.
    """
    matcher = BlockMatcher(block_radius=block_radius,
                           search_radius=search_radius,
                           n_workers=n_workers,
                           boundary=boundary,
                           boundary_value=boundary_value)
    return matcher.match(fixed_image, moving_image, feature_points,
                         progress_callback=progress_callback)


# ===== 워커 =====

def _process_range(searcher: BlockCorrelationSearcher,
                   points: np.ndarray,
                   work_range: WorkRange,
                   accumulator: ResultAccumulator) -> WorkRange:
    """담당 구간의 특징점만 탐색하여 기록"""
    for idx in work_range.indices():
        displacement, similarity = searcher.search(points[idx])
        accumulator.store(idx, displacement, similarity)
    return work_range


# ===== 유틸 =====

def _as_points(feature_points) -> np.ndarray:
    """특징점을 읽기 전용 (N, D) float64 배열로 정규화"""
    if feature_points is None:
        raise ConfigurationError("필수 입력 누락: FeaturePoints")

    if isinstance(feature_points, PointSet):
        feature_points = feature_points.points

    points = np.array(feature_points, dtype=np.float64)
    if points.size == 0:
        raise ConfigurationError("Invalid number of feature points: 0")
    if points.ndim == 1:
        points = points.reshape(1, -1)
    if points.ndim != 2:
        raise ConfigurationError(
            f"feature points must be (N, D), got shape {points.shape}")

    points.setflags(write=False)
    return points


def _check_radius(value: RadiusType, label: str) -> Union[int, Tuple[int, ...]]:
    """반경 타입/부호 검사 (차원은 실행 시점에 확인)"""
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        values = (int(value),)
        result = int(value)
    else:
        try:
            values = tuple(value)
        except TypeError:
            raise ConfigurationError(f"{label} must be int or sequence, got {value!r}")
        if len(values) == 0:
            raise ConfigurationError(f"{label} is empty")
        result = values

    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)) or v < 0:
            raise ConfigurationError(
                f"{label} must contain nonnegative integers, got {value!r}")

    if isinstance(result, tuple):
        result = tuple(int(v) for v in result)
    return result


def _expand_radius(value: Union[int, Tuple[int, ...]], dimension: int,
                   label: str) -> np.ndarray:
    if isinstance(value, int):
        return np.full(dimension, value, dtype=np.int64)
    if len(value) != dimension:
        raise ConfigurationError(
            f"{label} has {len(value)} components but images are {dimension}-D")
    return np.array(value, dtype=np.int64)


def _radius_repr(value) -> str:
    if isinstance(value, int):
        return f"[{value}, ...]"
    return str(list(value))
