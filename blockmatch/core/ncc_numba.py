"""
Numba NCC 탐색 커널

블록 매칭의 핵심 경로. POI 1개에 대해 윈도우 내 모든 후보 중심을
래스터 순서로 순회하며 제곱 NCC가 최대인 후보를 찾는다.

차원 독립 구현:
    - ref_block: 고정 이미지 블록 (평탄화, 래스터 순서)
    - region:    이동 이미지의 (윈도우 + 블록) 영역 (평탄화)
    - block_offsets[i]:     region 내 블록 복셀 i의 평탄 오프셋
    - candidate_offsets[k]: region 내 후보 k 블록 시작점의 평탄 오프셋
    → 후보 k의 복셀 i = region[candidate_offsets[k] + block_offsets[i]]

유사도 (제곱 Pearson 상관):
    mean_a = sum_a / n,  mean_b = sum_b / n
    var_a  = sum_sq_a - n * mean_a²
    var_b  = sum_sq_b - n * mean_b²
    cov    = cross - n * mean_a * mean_b
    sim    = cov² / (var_a * var_b)    (var_a * var_b == 0 이면 0)

one-pass 분산은 catastrophic cancellation에 취약할 수 있으나 합산 순서가
고정되어 있어 결과는 워커 수와 무관하게 비트 단위로 동일하다.
fastmath는 사용하지 않는다 (합산 순서 재배열 금지).

nogil=True: ThreadPoolExecutor 워커들이 GIL 없이 병렬 실행된다.
"""

import numpy as np
from numba import jit, float64, int64


@jit(float64(float64, float64, float64, float64, float64, float64),
     nopython=True, nogil=True, cache=True)
def ncc_from_sums(count, sum_a, sum_sq_a, sum_b, sum_sq_b, cross):
    """누적합으로부터 제곱 NCC 계산 (분산 0 보호)"""
    mean_a = sum_a / count
    mean_b = sum_b / count
    var_a = sum_sq_a - count * mean_a * mean_a
    var_b = sum_sq_b - count * mean_b * mean_b
    cov = cross - count * mean_a * mean_b

    denom = var_a * var_b
    if denom != 0.0:
        return (cov * cov) / denom
    return 0.0


@jit(nopython=True, nogil=True, cache=True)
def block_ncc(a, b):
    """
    같은 길이의 평탄화된 두 블록 간 제곱 NCC

    Args:
        a, b: float64 1D 배열

    Returns:
        similarity (평탄 블록이면 0.0)
    """
    n = a.shape[0]
    sum_a = 0.0
    sum_sq_a = 0.0
    sum_b = 0.0
    sum_sq_b = 0.0
    cross = 0.0
    for i in range(n):
        va = a[i]
        vb = b[i]
        sum_a += va
        sum_b += vb
        sum_sq_a += va * va
        sum_sq_b += vb * vb
        cross += va * vb
    return ncc_from_sums(float64(n), sum_a, sum_sq_a, sum_b, sum_sq_b, cross)


@jit(nopython=True, nogil=True, cache=True)
def search_window_ncc(ref_block, region, block_offsets, candidate_offsets):
    """
    윈도우 탐색: 최대 유사도 후보 선택

    동점 처리: `sim >= best` 비교이므로 래스터 순서상 마지막에 방문한
    후보가 선택된다. best 초기값은 0.0이며, 모든 후보가 0이면 마지막
    후보가 선택된다.

    Args:
        ref_block: 고정 이미지 블록 (n_voxels,)
        region: 이동 이미지 탐색 영역 (평탄화)
        block_offsets: 블록 복셀 평탄 오프셋 (n_voxels,)
        candidate_offsets: 후보 시작 평탄 오프셋 (n_candidates,)

    Returns:
        (best_k, best_sim)
        best_k: 선택된 후보 인덱스 (모든 점수가 NaN이면 -1)
    """
    n_voxels = block_offsets.shape[0]
    n_candidates = candidate_offsets.shape[0]
    count = float64(n_voxels)

    best_k = int64(-1)
    best_sim = 0.0

    for k in range(n_candidates):
        base = candidate_offsets[k]

        sum_a = 0.0
        sum_sq_a = 0.0
        sum_b = 0.0
        sum_sq_b = 0.0
        cross = 0.0

        # 고정 블록(중심 고정)과 후보 블록을 같은 래스터 순서로 동시 순회
        for i in range(n_voxels):
            va = ref_block[i]
            vb = region[base + block_offsets[i]]
            sum_b += vb
            sum_a += va
            sum_sq_b += vb * vb
            sum_sq_a += va * va
            cross += va * vb

        sim = ncc_from_sums(count, sum_a, sum_sq_a, sum_b, sum_sq_b, cross)

        if sim >= best_sim:
            best_sim = sim
            best_k = k

    return best_k, best_sim


def warmup_ncc_kernels():
    """JIT 컴파일 워밍업"""
    rng = np.random.default_rng(0)
    ref = rng.random(9)
    region = rng.random(25)
    block_offsets = np.array([0, 1, 2, 5, 6, 7, 10, 11, 12], dtype=np.int64)
    candidate_offsets = np.array([0, 1, 2, 5, 6, 7, 10, 11, 12], dtype=np.int64)
    search_window_ncc(ref, region, block_offsets, candidate_offsets)
    block_ncc(ref, ref)
