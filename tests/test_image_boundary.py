"""
이미지 좌표 변환 및 경계 조건 테스트

검증 항목:
    1. 물리 좌표 ↔ 인덱스 변환 (origin, spacing, direction, round-half-up)
    2. 컬러 이미지 그레이스케일 변환
    3. 경계 조건별 범위 밖 gather 결과
    4. 경계 조건 이름 해석

사용법:
    python -m pytest tests/test_image_boundary.py -v
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from blockmatch.core.image import GridImage, as_grid_image
from blockmatch.core.boundary import (
    ZeroFluxNeumannBoundary,
    ConstantBoundary,
    PeriodicBoundary,
    MirrorBoundary,
    make_boundary,
)
from blockmatch.core.errors import ConfigurationError


# =============================================================================
#  GridImage
# =============================================================================

def test_identity_geometry_round_half_up():
    image = GridImage(np.zeros((10, 12)))
    assert image.transform_physical_point_to_index([3.4, 2.6]).tolist() == [3, 3]
    assert image.transform_physical_point_to_index([2.5, -0.5]).tolist() == [3, 0]
    assert image.size.tolist() == [12, 10]


def test_origin_spacing_roundtrip():
    image = GridImage(np.zeros((8, 8)), origin=(10.0, -1.0), spacing=(2.0, 0.5))
    index = image.transform_physical_point_to_index([14.0, 0.0])
    assert index.tolist() == [2, 2]
    assert np.allclose(image.transform_index_to_physical_point(index), [14.0, 0.0])


def test_direction_rotation():
    direction = np.array([[0.0, -1.0], [1.0, 0.0]])
    image = GridImage(np.zeros((5, 5)), direction=direction)
    physical = image.transform_index_to_physical_point([1, 0])
    assert np.allclose(physical, [0.0, 1.0])
    assert image.transform_physical_point_to_index(physical).tolist() == [1, 0]


def test_is_inside():
    image = GridImage(np.zeros((4, 6)))
    assert image.is_inside([5, 3])
    assert not image.is_inside([6, 0])
    assert not image.is_inside([-1, 0])


def test_from_color_image():
    bgr = np.random.default_rng(1).integers(0, 256, (10, 12, 3)).astype(np.uint8)
    image = GridImage.from_image(bgr)
    assert image.data.shape == (10, 12)
    assert image.ndim == 2


def test_invalid_geometry():
    with pytest.raises(ConfigurationError):
        GridImage(np.zeros((4, 4)), spacing=(1.0, 0.0))
    with pytest.raises(ConfigurationError):
        GridImage(np.zeros((4, 4)), origin=(0.0, 0.0, 0.0))
    with pytest.raises(ConfigurationError):
        GridImage(np.zeros((4, 4)), direction=np.zeros((2, 2)))
    with pytest.raises(ConfigurationError):
        as_grid_image(None, 'FixedImage')


# =============================================================================
#  경계 조건
# =============================================================================

DATA = np.arange(12, dtype=np.float64).reshape(3, 4)


def test_inside_fast_path():
    block = ZeroFluxNeumannBoundary().gather(DATA, (1, 1), (2, 3))
    assert np.array_equal(block, DATA[1:3, 1:4])
    assert block.dtype == np.float64


def test_zero_flux_neumann_gather():
    block = ZeroFluxNeumannBoundary().gather(DATA, (-1, -1), (3, 3))
    expected = [[0, 0, 1], [0, 0, 1], [4, 4, 5]]
    assert np.array_equal(block, expected)


def test_constant_gather():
    block = ConstantBoundary(7.0).gather(DATA, (-1, -1), (3, 3))
    expected = [[7, 7, 7], [7, 0, 1], [7, 4, 5]]
    assert np.array_equal(block, expected)


def test_constant_gather_far_outside():
    block = ConstantBoundary(-2.0).gather(DATA, (10, 10), (2, 2))
    assert np.all(block == -2.0)


def test_periodic_gather():
    block = PeriodicBoundary().gather(DATA, (-1, -1), (3, 3))
    expected = [[11, 8, 9], [3, 0, 1], [7, 4, 5]]
    assert np.array_equal(block, expected)


def test_mirror_gather():
    block = MirrorBoundary().gather(DATA, (-1, -1), (3, 3))
    expected = [[5, 4, 5], [1, 0, 1], [5, 4, 5]]
    assert np.array_equal(block, expected)


def test_mirror_map_axis():
    idx = np.array([-3, -1, 0, 3, 4, 5, 6])
    assert MirrorBoundary().map_axis(idx, 4).tolist() == [3, 1, 0, 3, 2, 1, 0]
    assert MirrorBoundary().map_axis(np.array([-2, 3]), 1).tolist() == [0, 0]


def test_make_boundary():
    assert isinstance(make_boundary(), ZeroFluxNeumannBoundary)
    assert isinstance(make_boundary('replicate'), ZeroFluxNeumannBoundary)
    assert isinstance(make_boundary('wrap'), PeriodicBoundary)
    assert isinstance(make_boundary('Reflect'), MirrorBoundary)

    constant = make_boundary('constant', value=3.5)
    assert isinstance(constant, ConstantBoundary)
    assert constant.value == 3.5

    custom = MirrorBoundary()
    assert make_boundary(custom) is custom

    with pytest.raises(ConfigurationError):
        make_boundary('unknown')
    with pytest.raises(ConfigurationError):
        make_boundary(42)


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
