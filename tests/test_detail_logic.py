import unittest
import numpy as np
from negpos.core.interfaces import PipelineContext
from negpos.features.detail.logic import (
    apply_luminance_noise_reduction,
    apply_luminance_sharpening,
    apply_unsharp_mask,
)
from negpos.features.detail.models import DetailConfig
from negpos.features.detail.processor import DetailProcessor


class TestDetailLogic(unittest.TestCase):
    def test_noise_reduction_smooths_flat_area(self):
        """Luminance noise on a flat patch should lose variance."""
        rng = np.random.default_rng(1)
        img = np.full((64, 64, 3), 0.5, dtype=np.float32)
        img += rng.normal(0.0, 0.03, size=(64, 64, 1)).astype(np.float32)

        res = apply_luminance_noise_reduction(img, 1.0)

        self.assertEqual(res.shape, img.shape)
        self.assertLess(np.var(res), np.var(img))

    def test_noise_reduction_keeps_chroma(self):
        """Only the luminance residual is replaced, channel differences stay."""
        rng = np.random.default_rng(2)
        img = rng.random((32, 32, 3)).astype(np.float32)
        res = apply_luminance_noise_reduction(img, 1.0)
        self.assertTrue(
            np.allclose(res[..., 0] - res[..., 1], img[..., 0] - img[..., 1], atol=1e-5)
        )

    def test_sharpening_increases_edge_contrast(self):
        img = np.zeros((100, 100, 3), dtype=np.float32)
        img[25:75, 25:75, :] = 0.5

        res = apply_luminance_sharpening(img, 1.0)

        self.assertGreater(np.var(res), np.var(img))

    def test_unsharp_mask_increases_edge_contrast(self):
        img = np.zeros((100, 100, 3), dtype=np.float32)
        img[25:75, 25:75, :] = 0.5

        res = apply_unsharp_mask(img, 2.5, 1.0)

        self.assertGreater(res.max(), 0.5)
        self.assertLess(res.min(), 0.0)

    def test_processor_identity_at_defaults(self):
        img = np.random.rand(16, 16, 3).astype(np.float32)
        res = DetailProcessor(DetailConfig()).process(
            img, PipelineContext(original_size=(16, 16))
        )
        self.assertIs(res, img)


if __name__ == "__main__":
    unittest.main()
