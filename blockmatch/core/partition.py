"""
특징점 인덱스 작업 분할 모듈

N개의 특징점 인덱스를 W개 워커용 연속 구간으로 나눈다.
POI당 탐색 비용은 내용과 무관하게 동일하므로 균등 분할로 충분하며,
동적 부하 분산은 사용하지 않는다.

    base  = N // W
    count = base                (w < W-1)
          = base + N % W        (마지막 워커, 나머지 흡수)
    first = w * base
"""

from dataclasses import dataclass
from typing import List

from .errors import ConfigurationError


@dataclass(frozen=True)
class WorkRange:
    """워커 1개가 담당하는 인덱스 구간 [first, first + count)"""
    worker_id: int
    first: int
    count: int

    @property
    def stop(self) -> int:
        return self.first + self.count

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def indices(self) -> range:
        return range(self.first, self.stop)

    def __str__(self) -> str:
        return f"worker {self.worker_id}: [{self.first}, {self.stop})"


def partition_work(n_points: int, n_workers: int) -> List[WorkRange]:
    """
    균등 분할 (결정적)

    N < W이면 앞쪽 W-1개 구간은 비어 있고 마지막 구간이 전체를 가진다.

    Args:
        n_points: 특징점 수 N (>= 1)
        n_workers: 워커 수 W (>= 1)

    Returns:
        W개의 WorkRange (서로 겹치지 않고 합집합이 [0, N))
    """
    if n_points < 1:
        raise ConfigurationError(f"Invalid number of feature points: {n_points}")
    if n_workers < 1:
        raise ConfigurationError(f"Invalid number of workers: {n_workers}")

    base = n_points // n_workers
    ranges = []
    for worker_id in range(n_workers):
        count = base
        if worker_id == n_workers - 1:
            count += n_points % n_workers
        ranges.append(WorkRange(worker_id=worker_id,
                                first=worker_id * base,
                                count=count))
    return ranges
