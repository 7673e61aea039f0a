import math
import unittest

import numpy as np

from aiff8.dither import (
    HISTORY_SIZE,
    SHAPED_COEFFS,
    DitherState,
    reduce_nominal,
    reduce_samples,
    to_unsigned,
)


def _reference(s: int) -> int:
    return min(255, max(0, math.floor(s / 256.0 + 128.0 + 0.5)))


class TestNominalReduction(unittest.TestCase):
    def test_known_values(self) -> None:
        out = reduce_samples(np.array([0, -32768], dtype=np.int16), 16)
        np.testing.assert_array_equal(out, [128, 0])

        out = reduce_samples(np.array([256, -256], dtype=np.int16), 16)
        np.testing.assert_array_equal(out, [129, 127])

    def test_matches_formula_over_full_range(self) -> None:
        samples = np.arange(-32768, 32768, 37, dtype=np.int64).astype(np.int16)
        out = reduce_nominal(samples)
        expected = [_reference(int(s)) for s in samples]
        self.assertEqual(out.dtype, np.uint8)
        np.testing.assert_array_equal(out, expected)

    def test_extremes_saturate(self) -> None:
        out = reduce_nominal(np.array([32767, -32768, 32640, 32639], dtype=np.int16))
        np.testing.assert_array_equal(out, [255, 0, 255, 255])

    def test_half_rounds_up(self) -> None:
        # 128 / 256 = 0.5 -> 128.5 -> 129
        np.testing.assert_array_equal(reduce_nominal(np.array([128, -128], dtype=np.int16)), [129, 128])


class TestEightBitPassThrough(unittest.TestCase):
    def test_identity(self) -> None:
        data = np.arange(256, dtype=np.uint8)
        out = reduce_samples(data, 8)
        np.testing.assert_array_equal(out, data)

    def test_dither_ignored_for_8bit(self) -> None:
        data = np.array([10, 200, 0], dtype=np.uint8)
        out = reduce_samples(data, 8, dither=True, seed=3)
        np.testing.assert_array_equal(out, [10, 200, 0])

    def test_unsupported_size(self) -> None:
        with self.assertRaises(ValueError):
            reduce_samples(np.zeros(4, dtype=np.int16), 24)


class TestDitherState(unittest.TestCase):
    def test_initial_state(self) -> None:
        state = DitherState(seed=0)
        self.assertEqual(state.history, [0.0] * HISTORY_SIZE)
        self.assertEqual(state.index, 0)
        self.assertEqual(state.coeffs, SHAPED_COEFFS)

    def test_error_feedback_without_noise(self) -> None:
        state = DitherState(noise=False)

        self.assertEqual(state.update(128.3), 128)
        self.assertEqual(state.index, 1)
        self.assertAlmostEqual(state.history[1], 0.3)

        # 128.3 + 0.3 * 2.033 = 128.9099 -> 129
        self.assertEqual(state.update(128.3), 129)
        self.assertEqual(state.index, 2)
        self.assertAlmostEqual(state.history[2], 128.3 + 0.3 * 2.033 - 129.0)

    def test_index_wraps(self) -> None:
        state = DitherState(noise=False)
        for _ in range(HISTORY_SIZE + 3):
            state.update(100.0)
        self.assertEqual(state.index, 3)

    def test_exact_input_has_no_error(self) -> None:
        state = DitherState(noise=False)
        out = [state.update(64.0) for _ in range(20)]
        self.assertEqual(out, [64] * 20)
        self.assertEqual(state.history, [0.0] * HISTORY_SIZE)

    def test_feedback_tracks_mean(self) -> None:
        state = DitherState(noise=False)
        out = np.array([state.update(100.3) for _ in range(2000)], dtype=np.float64)
        self.assertLess(abs(float(out.mean()) - 100.3), 0.1)
        self.assertGreater(len(set(out.tolist())), 1)

    def test_output_clamped(self) -> None:
        state = DitherState(seed=7)
        for v in [300.0, -50.0, 255.4, 0.2] * 50:
            out = state.update(v)
            self.assertGreaterEqual(out, 0)
            self.assertLessEqual(out, 255)

    def test_triangular_noise_range(self) -> None:
        state = DitherState(seed=11)
        draws = [state.triangular_noise() for _ in range(2000)]
        self.assertGreaterEqual(min(draws), -1.0)
        self.assertLessEqual(max(draws), 1.0)
        self.assertLess(abs(float(np.mean(draws))), 0.05)

    def test_too_many_taps(self) -> None:
        with self.assertRaises(ValueError):
            DitherState(coeffs=[0.1] * (HISTORY_SIZE + 1))


class TestDitheredReduction(unittest.TestCase):
    def test_reproducible_with_seed(self) -> None:
        rng = np.random.default_rng(0)
        samples = rng.integers(-20000, 20000, size=512).astype(np.int16)
        a = reduce_samples(samples, 16, dither=True, seed=42)
        b = reduce_samples(samples, 16, dither=True, seed=42)
        np.testing.assert_array_equal(a, b)

    def test_explicit_generator(self) -> None:
        samples = np.linspace(-1000, 1000, 300).astype(np.int16)
        a = reduce_samples(samples, 16, dither=True, rng=np.random.default_rng(5))
        b = reduce_samples(samples, 16, dither=True, rng=np.random.default_rng(5))
        np.testing.assert_array_equal(a, b)

    def test_range_on_full_scale_input(self) -> None:
        samples = np.tile(np.array([32767, -32768, 32767, 0], dtype=np.int16), 256)
        out = reduce_samples(samples, 16, dither=True, seed=1)
        self.assertEqual(out.shape, samples.shape)
        self.assertEqual(out.dtype, np.uint8)
        self.assertGreaterEqual(int(out.min()), 0)
        self.assertLessEqual(int(out.max()), 255)

    def test_silence_stays_centered(self) -> None:
        out = reduce_samples(np.zeros(4000, dtype=np.int16), 16, dither=True, seed=9)
        self.assertLess(abs(float(out.astype(np.float64).mean()) - 128.0), 0.5)

    def test_noise_drawn_in_one_block(self) -> None:
        samples = np.array([0, 500, -500, 32000, -32000, 7, 0, 1200], dtype=np.int16)
        out = reduce_samples(samples, 16, dither=True, seed=3)

        noise = np.random.default_rng(3).uniform(-0.5, 0.5, size=(samples.size, 2)).sum(axis=1)
        state = DitherState()
        expected = [state.update(to_unsigned(int(s)), float(n)) for s, n in zip(samples, noise)]
        np.testing.assert_array_equal(out, expected)

    def test_noise_block_shape_and_range(self) -> None:
        block = DitherState(seed=4).noise_block(1000)
        self.assertEqual(block.shape, (1000,))
        self.assertGreaterEqual(float(block.min()), -1.0)
        self.assertLessEqual(float(block.max()), 1.0)

    def test_noise_free_matches_state(self) -> None:
        samples = np.array([100, -3000, 12345, 77, -1], dtype=np.int16)
        out = reduce_samples(samples, 16, dither=True, noise=False)
        state = DitherState(noise=False)
        expected = [state.update(to_unsigned(int(s))) for s in samples]
        np.testing.assert_array_equal(out, expected)


if __name__ == "__main__":
    unittest.main()
