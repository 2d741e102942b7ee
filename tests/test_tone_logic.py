import numpy as np
from negpos.core.interfaces import PipelineContext
from negpos.features.tone.logic import (
    apply_black_white_points,
    apply_exposure_contrast_brightness,
    apply_gamma,
    apply_highlights_shadows,
    apply_s_curve,
    build_s_curve,
)
from negpos.features.tone.models import ToneConfig
from negpos.features.tone.processor import PerceptualToneMappingProcessor, ToneProcessor


def test_apply_gamma_identity():
    img = np.random.rand(10, 10, 3).astype(np.float32)
    res = apply_gamma(img, 1.0)
    assert np.allclose(res, img)


def test_apply_gamma_power():
    img = np.array([[[0.25, 0.25, 0.25]]], dtype=np.float32)
    res = apply_gamma(img, 0.5)
    assert np.allclose(res, 0.5)


def test_apply_gamma_degenerate_exponent():
    img = np.random.rand(4, 4, 3).astype(np.float32)
    assert apply_gamma(img, 0.0) is img
    assert apply_gamma(img, -3.0) is img


def test_exposure_one_stop():
    img = np.array([[[0.2, 0.3, 0.4]]], dtype=np.float32)
    res = apply_exposure_contrast_brightness(img, 1.0, 1.0, 0.0)
    assert np.allclose(res, [0.4, 0.6, 0.8])


def test_contrast_increase():
    img = np.array([[[0.4, 0.5, 0.6]]], dtype=np.float32)
    res = apply_exposure_contrast_brightness(img, 0.0, 2.0, 0.0)
    # (0.4 - 0.5) * 2 + 0.5 = 0.3
    assert np.allclose(res, [0.3, 0.5, 0.7])


def test_black_white_points():
    img = np.array([[[0.1, 0.5, 0.9]]], dtype=np.float32)
    res = apply_black_white_points(img, 0.1, 0.9)
    assert np.allclose(res, [0.0, 0.5, 1.0])


def test_shadows_lift_dark_more_than_bright():
    img = np.zeros((2, 1, 3), dtype=np.float32)
    img[0] = 0.1
    img[1] = 0.9
    res = apply_highlights_shadows(img, 0.0, 1.0)
    assert res[0, 0, 0] - 0.1 > res[1, 0, 0] - 0.9
    assert res[0, 0, 0] > 0.1


def test_s_curve_passes_through_anchors():
    curve = build_s_curve(0.05, 0.05)
    assert np.isclose(curve(0.0), 0.0)
    assert np.isclose(curve(0.5), 0.5)
    assert np.isclose(curve(1.0), 1.0)
    assert np.isclose(curve(0.25), 0.30)
    assert np.isclose(curve(0.75), 0.70)


def test_s_curve_is_monotone():
    curve = build_s_curve(0.2, 0.2)
    xs = np.linspace(0.0, 1.0, 200)
    assert np.all(np.diff(curve(xs)) >= -1e-9)


def test_s_curve_identity_at_zero():
    img = np.random.rand(5, 5, 3).astype(np.float32)
    assert apply_s_curve(img, 0.0, 0.0) is img


def test_tone_processors_identity_at_defaults():
    img = np.random.rand(16, 16, 3).astype(np.float32)
    ctx = PipelineContext(original_size=(16, 16))
    conf = ToneConfig()
    res = PerceptualToneMappingProcessor(conf).process(ToneProcessor(conf).process(img, ctx), ctx)
    assert np.allclose(res, img)
