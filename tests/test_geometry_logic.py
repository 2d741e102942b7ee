import numpy as np
from negpos.core.interfaces import PipelineContext
from negpos.features.geometry.logic import (
    apply_fine_rotation,
    apply_orientation,
    apply_perspective_correction,
    apply_scale,
    crop_to_rect,
)
from negpos.features.geometry.models import GeometryConfig
from negpos.features.geometry.processor import GeometryProcessor


def test_crop_to_rect():
    img = np.zeros((100, 200, 3), dtype=np.float32)
    res = crop_to_rect(img, (10, 20, 50, 30))
    assert res.shape == (30, 50, 3)


def test_crop_is_clamped_to_bounds():
    img = np.zeros((100, 200, 3), dtype=np.float32)
    res = crop_to_rect(img, (150, 80, 100, 100))
    assert res.shape == (20, 50, 3)


def test_crop_outside_image_is_ignored():
    img = np.zeros((100, 200, 3), dtype=np.float32)
    res = crop_to_rect(img, (500, 500, 10, 10))
    assert res.shape == img.shape


def test_orientation_quarter_turn():
    img = np.zeros((10, 20, 3), dtype=np.float32)
    img[0, 0] = 1.0
    res = apply_orientation(img, rotation=1)
    assert res.shape == (20, 10, 3)
    # Top-left goes to bottom-left on a CCW turn
    assert res[-1, 0, 0] == 1.0


def test_orientation_mirror():
    img = np.zeros((4, 4, 3), dtype=np.float32)
    img[0, 0] = 1.0
    assert apply_orientation(img, mirror_horizontal=True)[0, -1, 0] == 1.0
    assert apply_orientation(img, mirror_vertical=True)[-1, 0, 0] == 1.0


def test_fine_rotation_keeps_size():
    img = np.random.rand(50, 80, 3).astype(np.float32)
    res = apply_fine_rotation(img, 5.0)
    assert res.shape == img.shape
    assert apply_fine_rotation(img, 0.0) is img


def test_scale_half():
    img = np.random.rand(40, 60, 3).astype(np.float32)
    res = apply_scale(img, 0.5)
    assert res.shape == (20, 30, 3)


def test_perspective_full_frame_keeps_size():
    img = np.full((40, 60, 3), 0.3, dtype=np.float32)
    points = ((0.0, 0.0), (60.0, 0.0), (60.0, 40.0), (0.0, 40.0))
    res = apply_perspective_correction(img, points)
    assert res.shape == (40, 60, 3)
    assert np.allclose(res, 0.3, atol=1e-5)


def test_perspective_keystone_straightens():
    img = np.zeros((100, 100, 3), dtype=np.float32)
    points = ((20.0, 10.0), (80.0, 10.0), (95.0, 90.0), (5.0, 90.0))
    res = apply_perspective_correction(img, points)
    # Output box is the longest opposite edges
    assert res.shape == (81, 90, 3)


def test_perspective_degenerate_quad_is_noop():
    img = np.random.rand(40, 60, 3).astype(np.float32)
    points = ((10.0, 10.0), (10.0, 10.0), (10.0, 10.0), (10.0, 10.0))
    assert apply_perspective_correction(img, points) is img


def test_perspective_points_scale_with_reference():
    img = np.random.rand(40, 60, 3).astype(np.float32)
    # Handles placed on a half-size preview
    points = ((0.0, 0.0), (15.0, 0.0), (15.0, 10.0), (0.0, 10.0))
    res = apply_perspective_correction(img, points, (30.0, 20.0))
    assert res.shape == (20, 30, 3)


def test_geometry_processor_defaults_identity():
    img = np.random.rand(30, 40, 3).astype(np.float32)
    ctx = PipelineContext(original_size=(30, 40))
    res = GeometryProcessor(GeometryConfig()).process(img, ctx)
    assert np.array_equal(res, img)
    assert ctx.metrics["geometry_size"] == (30, 40)


def test_geometry_processor_crop_then_rotate():
    img = np.zeros((100, 200, 3), dtype=np.float32)
    config = GeometryConfig(rotation=1, crop_rect=(0, 0, 120, 60))
    ctx = PipelineContext(original_size=(100, 200))
    res = GeometryProcessor(config).process(img, ctx)
    assert res.shape == (120, 60, 3)


def test_clamped_to_drops_empty_crop():
    config = GeometryConfig(crop_rect=(300, 300, 10, 10))
    assert config.clamped_to(100, 100).crop_rect is None


def test_geometry_processor_clamps_perspective_to_frame():
    img = np.random.rand(10, 10, 3).astype(np.float32)
    ctx = PipelineContext(original_size=(10, 10))
    quad = ((-10.0, -10.0), (20.0, -10.0), (20.0, 20.0), (-10.0, 20.0))
    res = GeometryProcessor(GeometryConfig(perspective_points=quad)).process(img, ctx)
    assert res.shape == (10, 10, 3)
