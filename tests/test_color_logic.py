import unittest
import numpy as np
from negpos.core.interfaces import PipelineContext
from negpos.features.color.logic import (
    apply_cube,
    apply_targeted_hue_adjustment,
    apply_tints,
    build_hue_cube,
    neutralize_midtones,
)
from negpos.features.color.models import ColorCastConfig
from negpos.features.color.processor import ColorCastProcessor


class TestHueCube(unittest.TestCase):
    def test_zero_deltas_build_identity_cube(self):
        cube = build_hue_cube(180.0, 40.0, 0.0, 0.0, size=8)
        self.assertEqual(cube.shape, (8, 8, 8, 3))
        grid = np.linspace(0.0, 1.0, 8)
        self.assertTrue(np.allclose(cube[:, 0, 0, 0], grid, atol=1e-6))
        self.assertTrue(np.allclose(cube[0, :, 0, 1], grid, atol=1e-6))
        self.assertTrue(np.allclose(cube[0, 0, :, 2], grid, atol=1e-6))

    def test_identity_cube_lookup_is_identity(self):
        cube = build_hue_cube(180.0, 40.0, 0.0, 0.0, size=16)
        img = np.random.rand(12, 12, 3).astype(np.float32)
        res = apply_cube(img, cube)
        self.assertTrue(np.allclose(res, img, atol=1e-5))

    def test_desaturates_cyan_only(self):
        img = np.zeros((1, 2, 3), dtype=np.float32)
        img[0, 0] = (0.2, 0.8, 0.8)  # Cyan, hue 180
        img[0, 1] = (0.8, 0.2, 0.2)  # Red, hue 0
        res = apply_targeted_hue_adjustment(img, 180.0, 40.0, -1.0, 0.0)

        cyan = res[0, 0]
        self.assertLess(cyan.max() - cyan.min(), 0.6 * 0.5)
        self.assertTrue(np.allclose(res[0, 1], img[0, 1], atol=2e-2))

    def test_range_wraps_around_zero(self):
        img = np.zeros((1, 1, 3), dtype=np.float32)
        img[0, 0] = (0.8, 0.2, 0.3)  # Hue ~350
        res = apply_targeted_hue_adjustment(img, 5.0, 40.0, 0.0, -0.3)
        self.assertLess(res[0, 0].max(), 0.7)

    def test_noop_paths(self):
        img = np.random.rand(4, 4, 3).astype(np.float32)
        self.assertIs(apply_targeted_hue_adjustment(img, 180, 40, 0.0005, 0.0), img)
        self.assertIs(apply_targeted_hue_adjustment(img, 180, 0, 0.5, 0.5), img)


def test_neutralize_midtones_removes_cast():
    img = np.random.rand(20, 20, 3).astype(np.float32) * 0.5
    img[..., 0] += 0.3
    res = neutralize_midtones(img, 1.0)
    means = res.reshape(-1, 3).mean(axis=0)
    assert np.allclose(means, means.mean(), atol=1e-4)


def test_neutralize_midtones_strength_blends():
    img = np.random.rand(10, 10, 3).astype(np.float32)
    img[..., 2] *= 0.5
    full = neutralize_midtones(img, 1.0)
    half = neutralize_midtones(img, 0.5)
    assert np.allclose(half, (img + full) / 2, atol=1e-5)


def test_neutralize_midtones_black_frame_is_noop():
    img = np.zeros((5, 5, 3), dtype=np.float32)
    assert neutralize_midtones(img, 1.0) is img


def test_tints_are_additive():
    img = np.full((2, 2, 3), 0.5, dtype=np.float32)
    res = apply_tints(img, (0.1, 0.0, 0.0), 1.0, (0.0, 0.0, 0.2), 0.5)
    assert np.allclose(res[0, 0], [0.6, 0.5, 0.6])


def test_processor_identity_at_defaults():
    img = np.random.rand(8, 8, 3).astype(np.float32)
    res = ColorCastProcessor(ColorCastConfig()).process(img, PipelineContext(original_size=(8, 8)))
    assert np.allclose(res, img)


if __name__ == "__main__":
    unittest.main()
