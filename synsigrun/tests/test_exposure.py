import os
import tempfile
import unittest
import pandas as pd
import numpy as np

from synsigrun.exposure import rescale, normalize_then_rescale, rescale_exposures
from synsigrun.exposure import normalize_signatures, write_exposure, read_exposure
from synsigrun.engines import EngineResult
from synsigrun.errors import DivisionByZeroError, FormatError

class TestRescale(unittest.TestCase):
    """
    Test exposure rescaling.
    """
    def test_rescale(self):
        self.assertTrue(np.allclose(rescale([0.5, 0.25], 100), [50, 25]))

    def test_rescale_tuple(self):
        self.assertTrue(np.allclose(rescale((0.5, 0.5), 3), [1.5, 1.5]))
        self.assertAlmostEqual(rescale((0.2, 0.3), 10).sum(), 10 * 0.5)

    def test_rescale_zero_total(self):
        self.assertTrue(np.allclose(rescale([0.5, 0.5], 0), [0, 0]))

    def test_rescale_partial_weights(self):
        # weights summing to < 1 leave mutations unattributed
        self.assertAlmostEqual(rescale(np.array([0.3, 0.2]), 40).sum(), 20)

    def test_normalize_then_rescale(self):
        self.assertTrue(np.allclose(normalize_then_rescale([2, 6], 10), [2.5, 7.5]))
        self.assertAlmostEqual(normalize_then_rescale(np.array([0.1, 3.2, 7.0]), 123).sum(), 123)

    def test_normalize_then_rescale_partial_zero(self):
        self.assertTrue(np.allclose(normalize_then_rescale([2, 2, 0, 0], 100), [50, 50, 0, 0]))
        self.assertTrue(np.allclose(normalize_then_rescale((1, 3), 8), [2, 6]))

    def test_normalize_then_rescale_nan(self):
        with self.assertRaises(FormatError):
            normalize_then_rescale([np.nan, 1], 10, sample='S3')

    def test_normalize_then_rescale_zero(self):
        with self.assertRaises(DivisionByZeroError) as cm:
            normalize_then_rescale([0, 0], 10, sample='S9')
        self.assertEqual(cm.exception.sample, 'S9')
        self.assertIsInstance(cm.exception, ZeroDivisionError)

class TestRescaleExposures(unittest.TestCase):
    """
    Test dispatch on engine result kind.
    """
    def setUp(self):
        self.counts = pd.DataFrame(
            [[10, 30], [5, 15]],
            index=['S1', 'S2'],
            columns=['m1', 'm2']
        )

    def test_weights(self):
        w = pd.DataFrame([[0.5, 0.25], [0.1, 0.9]], index=['S1', 'S2'], columns=['SigA', 'SigB'])
        exposures = rescale_exposures(EngineResult('weights', w), self.counts)

        self.assertEqual(list(exposures.index), ['SigA', 'SigB'])
        self.assertEqual(list(exposures.columns), ['S1', 'S2'])
        self.assertTrue(np.allclose(exposures['S1'], [20, 10]))
        self.assertTrue(np.allclose(exposures['S2'], [2, 18]))

    def test_loadings(self):
        raw = pd.DataFrame([[3, 1], [0, 7]], index=['S2', 'S1'], columns=['SigA', 'SigB'])
        exposures = rescale_exposures(EngineResult('loadings', raw), self.counts)

        self.assertTrue(np.allclose(exposures.sum(0), [40, 20]))
        self.assertTrue(np.allclose(exposures['S2'], [15, 5]))
        self.assertTrue(np.allclose(exposures['S1'], [0, 40]))

    def test_loadings_zero(self):
        raw = pd.DataFrame([[0, 0], [1, 1]], index=['S1', 'S2'], columns=['SigA', 'SigB'])
        with self.assertRaises(DivisionByZeroError) as cm:
            rescale_exposures(EngineResult('loadings', raw), self.counts)
        self.assertEqual(cm.exception.sample, 'S1')

    def test_sample_mismatch(self):
        raw = pd.DataFrame([[1, 1]], index=['S1'], columns=['SigA', 'SigB'])
        with self.assertRaises(FormatError):
            rescale_exposures(EngineResult('weights', raw), self.counts)

    def test_unknown_kind(self):
        raw = pd.DataFrame([[1, 1], [1, 1]], index=['S1', 'S2'], columns=['SigA', 'SigB'])
        with self.assertRaises(ValueError):
            rescale_exposures(EngineResult('counts', raw), self.counts)

class TestSignatures(unittest.TestCase):
    def test_normalize_signatures(self):
        sigs = pd.DataFrame([[1, 0], [3, 2]], index=['m1', 'm2'], columns=['SigA', 'SigB'])
        norm = normalize_signatures(sigs)
        self.assertTrue(np.allclose(norm.sum(0), 1))
        self.assertTrue(np.allclose(norm['SigA'], [0.25, 0.75]))

    def test_normalize_zero_signature(self):
        sigs = pd.DataFrame([[1, 0], [3, 0]], index=['m1', 'm2'], columns=['SigA', 'SigB'])
        with self.assertRaises(DivisionByZeroError):
            normalize_signatures(sigs)

class TestExposureIO(unittest.TestCase):
    def test_read_write(self):
        exposures = pd.DataFrame([[1.5, 2.0], [0.0, 4.25]], index=['SigA', 'SigB'], columns=['S1', 'S2'])
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'inferred.exposures.csv')
            write_exposure(exposures, path)
            back = read_exposure(path)

        self.assertEqual(list(back.index), ['SigA', 'SigB'])
        self.assertEqual(list(back.columns), ['S1', 'S2'])
        self.assertTrue(np.allclose(back.values, exposures.values))

if __name__ == '__main__':
    unittest.main()
