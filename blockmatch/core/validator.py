"""
변위장 검증 모듈

블록 매칭 결과의 신뢰도를 사후 점검한다 (결과는 수정하지 않음).
    1. 낮은 유사도 검출
    2. MAD 기반 축별 이상치 검출
    3. KD-tree 이웃 기반 불연속 검출

특징점은 격자가 아닐 수 있으므로 이웃 반경은 최근접 이웃 거리의
중앙값으로 정하고, 이웃 간 변위 차이가 거리 × gradient_threshold를
넘으면 불연속으로 판정한다.
"""

import numpy as np
from typing import List
from dataclasses import dataclass
from scipy.spatial import cKDTree

from ..models.point_sets import BlockMatchingResult
from ..utils.logger import logger


@dataclass
class ValidationResult:
    """검증 결과 (특징점 인덱스 목록)"""
    is_valid: bool
    discontinuous_points: List[int]
    outlier_points: List[int]
    low_similarity_points: List[int]

    discontinuity_ratio: float
    outlier_ratio: float
    low_similarity_ratio: float

    suggested_action: str  # 'proceed', 'increase_block_radius', 'increase_search_radius', 'fail'


def validate_displacements(result: BlockMatchingResult,
                           similarity_threshold: float = 0.5,
                           outlier_std_factor: float = 3.0,
                           gradient_threshold: float = 2.0,
                           discontinuity_tolerance: float = 0.1) -> ValidationResult:
    """
    변위장 검증

    Args:
        result: 블록 매칭 결과
        similarity_threshold: 유사도 임계값 (제곱 NCC)
        outlier_std_factor: 이상치 판정 표준편차 배수
        gradient_threshold: 이웃 간 허용 변위 그래디언트 (변위 차이 / 거리)
        discontinuity_tolerance: 허용 불량 비율

    Returns:
        ValidationResult
    """
    n_points = result.n_points

    if n_points == 0:
        return ValidationResult(
            is_valid=False,
            discontinuous_points=[],
            outlier_points=[],
            low_similarity_points=[],
            discontinuity_ratio=0.0,
            outlier_ratio=0.0,
            low_similarity_ratio=0.0,
            suggested_action='fail'
        )

    points = result.points
    disp = result.displacement_vectors
    sim = result.similarity_values

    # 1. 낮은 유사도 (NaN 변위 포함)
    low_mask = (sim < similarity_threshold) | np.any(~np.isfinite(disp), axis=1)
    low_similarity_points = np.flatnonzero(low_mask).tolist()

    finite = ~np.any(~np.isfinite(disp), axis=1)

    # 2. 이상치 (MAD 기반)
    outlier_mask = np.zeros(n_points, dtype=np.bool_)
    if np.any(finite):
        outlier_mask[finite] = _detect_outliers_mad(disp[finite], outlier_std_factor)
    outlier_points = np.flatnonzero(outlier_mask).tolist()

    # 3. 불연속 (KD-tree)
    discontinuous_mask = np.zeros(n_points, dtype=np.bool_)
    finite_idx = np.flatnonzero(finite)
    if len(finite_idx) >= 2:
        discontinuous_mask[finite_idx] = _detect_discontinuity_kdtree(
            points[finite_idx], disp[finite_idx], gradient_threshold)
    discontinuous_points = np.flatnonzero(discontinuous_mask).tolist()

    discontinuity_ratio = len(discontinuous_points) / n_points
    outlier_ratio = len(outlier_points) / n_points
    low_similarity_ratio = len(low_similarity_points) / n_points

    # 종합 판정
    total_bad_ratio = low_similarity_ratio + discontinuity_ratio

    if total_bad_ratio < discontinuity_tolerance:
        is_valid = True
        suggested_action = 'proceed'
    elif low_similarity_ratio > 0.3:
        is_valid = False
        suggested_action = 'increase_block_radius'
    elif discontinuity_ratio > 0.2:
        is_valid = False
        suggested_action = 'increase_search_radius'
    else:
        is_valid = False
        suggested_action = 'fail'

    if not is_valid:
        logger.warning(
            f"변위장 검증 실패: low_sim={low_similarity_ratio*100:.1f}%, "
            f"discontinuity={discontinuity_ratio*100:.1f}%, "
            f"outlier={outlier_ratio*100:.1f}% → {suggested_action}")

    return ValidationResult(
        is_valid=is_valid,
        discontinuous_points=discontinuous_points,
        outlier_points=outlier_points,
        low_similarity_points=low_similarity_points,
        discontinuity_ratio=discontinuity_ratio,
        outlier_ratio=outlier_ratio,
        low_similarity_ratio=low_similarity_ratio,
        suggested_action=suggested_action
    )


def _detect_outliers_mad(disp: np.ndarray, factor: float) -> np.ndarray:
    """MAD(Median Absolute Deviation) 기반 축별 이상치 검출"""
    med = np.median(disp, axis=0)
    mad = np.median(np.abs(disp - med), axis=0)
    mad = np.where(mad > 0, mad, 1.0)

    threshold = factor * 1.4826 * mad
    return np.any(np.abs(disp - med) > threshold, axis=1)


def _detect_discontinuity_kdtree(points: np.ndarray,
                                 disp: np.ndarray,
                                 threshold: float) -> np.ndarray:
    """
    KD-tree 기반 불연속 검출, O(n·k)

    이웃 탐색 반경: 최근접 이웃 거리 중앙값 × 1.5 (격자면 대각선 포함)
    """
    n_points = len(points)
    tree = cKDTree(points)

    nn_dist, _ = tree.query(points, k=2)
    spacing = float(np.median(nn_dist[:, 1]))
    if spacing <= 0:
        return np.zeros(n_points, dtype=np.bool_)

    neighbor_lists = tree.query_ball_point(points, r=spacing * 1.5)

    discontinuous = np.zeros(n_points, dtype=np.bool_)
    for idx in range(n_points):
        for j in neighbor_lists[idx]:
            if j == idx:
                continue

            distance = np.linalg.norm(points[j] - points[idx])
            if distance == 0:
                continue

            # 하나라도 임계값 초과 시 불연속 확정, 다음 POI로
            if np.linalg.norm(disp[j] - disp[idx]) > threshold * distance:
                discontinuous[idx] = True
                break

    return discontinuous
