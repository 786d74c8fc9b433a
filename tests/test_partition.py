"""
작업 분할 테스트

검증 항목:
    1. 구간이 서로소이고 연속이며 합집합이 [0, N)
    2. 마지막 구간 = base + N % W
    3. N < W 인 경우 빈 구간
    4. 잘못된 입력

사용법:
    python -m pytest tests/test_partition.py -v
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from blockmatch.core.partition import WorkRange, partition_work
from blockmatch.core.errors import ConfigurationError


def test_partition_coverage():
    """모든 (N, W) 조합에서 [0, N) 완전 분할"""
    for n_points in range(1, 41):
        for n_workers in range(1, 13):
            ranges = partition_work(n_points, n_workers)
            assert len(ranges) == n_workers

            covered = [idx for r in ranges for idx in r.indices()]
            assert covered == list(range(n_points)), (n_points, n_workers)

            base = n_points // n_workers
            for w, r in enumerate(ranges):
                assert r.worker_id == w
                assert r.first == w * base
            assert ranges[-1].count == base + n_points % n_workers
            assert sum(r.count for r in ranges) == n_points


def test_partition_remainder_to_last():
    ranges = partition_work(10, 3)
    assert [(r.first, r.count) for r in ranges] == [(0, 3), (3, 3), (6, 4)]
    assert ranges[-1].stop == 10


def test_partition_more_workers_than_points():
    """N < W: 앞쪽 W-1개 구간은 비어 있음"""
    ranges = partition_work(2, 5)
    assert all(r.is_empty for r in ranges[:-1])
    assert (ranges[-1].first, ranges[-1].count) == (0, 2)


def test_partition_deterministic():
    assert partition_work(17, 4) == partition_work(17, 4)


def test_partition_invalid():
    with pytest.raises(ConfigurationError):
        partition_work(0, 3)
    with pytest.raises(ConfigurationError):
        partition_work(5, 0)


def test_work_range_str():
    assert str(WorkRange(worker_id=1, first=3, count=2)) == "worker 1: [3, 5)"


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
