import os
import tempfile
import unittest
import matplotlib
matplotlib.use('Agg')
import pandas as pd
import numpy as np

from synsigrun.synsigrun import run_attribution, run_extraction, convert_emu_results
from synsigrun.catalog import Catalog, read_catalog, write_catalog
from synsigrun.exposure import read_exposure
from synsigrun.engines import EngineResult
from synsigrun.context import context96
from synsigrun.errors import OutputExistsError, EngineError

from synsigrun.tests.test_catalog import make_catalog
from synsigrun.tests.test_engines import write_emu_output

def weights_engine(counts, signatures=None, seed=1, **kwargs):
    """Attributes 40% of each sample to every signature."""
    weights = pd.DataFrame(0.4, index=counts.index, columns=signatures.index)
    return EngineResult('weights', weights, rng_kind=('fake', str(seed)), session_info='fake engine\n')

def loadings_engine(counts, signatures=None, seed=1, K_exact=None, **kwargs):
    """Extracts K_exact signatures with unnormalized loadings."""
    rs = np.random.RandomState(seed)
    names = ["fake.{}".format(i) for i in range(1, K_exact + 1)]
    extracted = pd.DataFrame(rs.randint(1, 20, size=(K_exact, counts.shape[1])), index=names, columns=counts.columns)
    loadings = pd.DataFrame(rs.rand(counts.shape[0], K_exact) + 0.1, index=counts.index, columns=names)
    return EngineResult('loadings', loadings, signatures=extracted)

def no_signature_engine(counts, **kwargs):
    return EngineResult('loadings', pd.DataFrame(1.0, index=counts.index, columns=['x']))

class RunTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.out_dir = os.path.join(self.tmp.name, 'out')

        self.catalog = make_catalog(context96, n_samples=12)
        self.catalog_file = os.path.join(self.tmp.name, 'catalog.csv')
        write_catalog(self.catalog, self.catalog_file)

        sigs = make_catalog(context96, n_samples=2, seed=1).data.astype(float)
        sigs.columns = ['SBS1', 'SBS5']
        self.sigs = Catalog(sigs / sigs.sum(0), 'counts.signature')
        self.sigs_file = os.path.join(self.tmp.name, 'signatures.csv')
        write_catalog(self.sigs, self.sigs_file)

    def tearDown(self):
        self.tmp.cleanup()

    def read(self, filename):
        with open(os.path.join(self.out_dir, filename)) as f:
            return f.read()

class TestAttribution(RunTestCase):
    """
    Test attribution runs with a fake engine.
    """
    def test_run_attribution(self):
        exposures = run_attribution(weights_engine, self.catalog_file, self.sigs_file, self.out_dir, seed=3)

        inferred = read_exposure(os.path.join(self.out_dir, 'inferred.exposures.csv'))
        totals = self.catalog.data.sum(0)

        self.assertEqual(list(inferred.index), ['SBS1', 'SBS5'])
        self.assertEqual(list(inferred.columns), self.catalog.samples)
        self.assertTrue(np.allclose(inferred.loc['SBS1'].values, 0.4 * totals.values))
        self.assertTrue(np.allclose(inferred.values, exposures.values))

        self.assertEqual(self.read('seedInUse.txt').strip(), '3')
        self.assertEqual(self.read('RNGInUse.txt').strip(), 'fake 3')
        self.assertEqual(self.read('sessionInfo.txt'), 'fake engine\n')

        gt = read_catalog(os.path.join(self.out_dir, 'ground.truth.signatures.csv'), 'counts.signature')
        self.assertEqual(gt.samples, ['SBS1', 'SBS5'])
        self.assertTrue(np.allclose(gt.data.values, self.sigs.data.values))
        self.assertTrue(os.path.exists(os.path.join(self.out_dir, 'engine_output.h5')))
        self.assertEqual(pd.read_hdf(os.path.join(self.out_dir, 'engine_output.h5'), 'exposures').shape, (12, 2))

    def test_overwrite(self):
        run_attribution(weights_engine, self.catalog_file, self.sigs_file, self.out_dir)
        with self.assertRaises(OutputExistsError):
            run_attribution(weights_engine, self.catalog_file, self.sigs_file, self.out_dir)
        run_attribution(weights_engine, self.catalog_file, self.sigs_file, self.out_dir, overwrite=True)

    def test_test_only(self):
        exposures = run_attribution(weights_engine, self.catalog_file, self.sigs_file, self.out_dir, test_only=True)
        self.assertEqual(list(exposures.columns), self.catalog.samples[:10])

    def test_default_provenance(self):
        def engine(counts, signatures=None, **kwargs):
            return EngineResult('weights', pd.DataFrame(0.5, index=counts.index, columns=signatures.index))

        run_attribution(engine, self.catalog, self.sigs, self.out_dir)
        self.assertEqual(self.read('RNGInUse.txt').strip(), 'numpy PCG64')
        self.assertTrue(self.read('sessionInfo.txt').startswith('Python '))

    def test_plots(self):
        run_attribution(weights_engine, self.catalog_file, self.sigs_file, self.out_dir, plot_results=True)
        self.assertTrue(os.path.exists(os.path.join(self.out_dir, 'signature_stacked_barplot.pdf')))

class TestExtraction(RunTestCase):
    """
    Test extraction runs with a fake engine.
    """
    def test_run_extraction(self):
        res = run_extraction(loadings_engine, self.catalog_file, self.out_dir, K_exact=3, gt_sigs_file=self.sigs_file)

        extracted = read_catalog(os.path.join(self.out_dir, 'extracted.signatures.csv'), 'counts.signature')
        self.assertEqual(extracted.samples, ['fake.1', 'fake.2', 'fake.3'])
        self.assertTrue(np.allclose(extracted.data.sum(0), 1))
        self.assertTrue(np.allclose(extracted.data.values, res['signature'].data.values))

        inferred = read_exposure(os.path.join(self.out_dir, 'inferred.exposures.csv'))
        self.assertTrue(np.allclose(inferred.sum(0).values, self.catalog.data.sum(0).values))

        cosine = pd.read_csv(os.path.join(self.out_dir, 'cosine.similarity.csv'), index_col=0)
        self.assertEqual(list(cosine.index), ['SBS1', 'SBS5'])
        self.assertEqual(list(cosine.columns), ['fake.1', 'fake.2', 'fake.3'])

        for f in ('seedInUse.txt', 'RNGInUse.txt', 'sessionInfo.txt', 'ground.truth.signatures.csv'):
            self.assertTrue(os.path.exists(os.path.join(self.out_dir, f)))

    def test_no_reference(self):
        run_extraction(loadings_engine, self.catalog_file, self.out_dir, K_exact=2)
        self.assertFalse(os.path.exists(os.path.join(self.out_dir, 'cosine.similarity.csv')))

    def test_missing_signatures(self):
        with self.assertRaises(EngineError):
            run_extraction(no_signature_engine, self.catalog_file, self.out_dir, K_exact=2)

    def test_plots(self):
        run_extraction(loadings_engine, self.catalog_file, self.out_dir, K_exact=2, gt_sigs_file=self.sigs_file, plot_results=True)
        for f in ('signature_contributions.pdf', 'signature_stacked_barplot.pdf', 'cosine_similarity_plot.pdf'):
            self.assertTrue(os.path.exists(os.path.join(self.out_dir, f)))

    def test_convert_emu_results(self):
        emu_dir = os.path.join(self.tmp.name, 'emu')
        os.makedirs(emu_dir)
        write_emu_output(emu_dir, K=2, n_samples=12)

        res = convert_emu_results(emu_dir, self.catalog_file, self.out_dir)

        self.assertEqual(res['signature'].samples, ['EMu.1', 'EMu.2'])
        self.assertTrue(np.allclose(res['signature'].data.sum(0), 1))
        self.assertTrue(np.allclose(res['exposure'].sum(0).values, self.catalog.data.sum(0).values))
        self.assertEqual(self.read('RNGInUse.txt').strip(), 'EMu')
        self.assertEqual(self.read('seedInUse.txt').strip(), 'NA')

if __name__ == '__main__':
    unittest.main()
