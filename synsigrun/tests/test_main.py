import unittest
from unittest import mock

from synsigrun import __main__ as cli

class TestCLI(unittest.TestCase):
    """
    Test command line dispatch.
    """
    def test_attribution(self):
        argv = ['synsigrun', 'sigfit.attribute', 'catalog.csv', '--gt_sigs', 'sigs.csv', '-o', 'out', '--seed', '5']
        with mock.patch('sys.argv', argv), mock.patch.object(cli, 'run_attribution') as run:
            cli.main()

        args, kwargs = run.call_args
        self.assertEqual(args, ('sigfit.attribute', 'catalog.csv', 'sigs.csv', 'out'))
        self.assertEqual(kwargs['seed'], 5)
        self.assertEqual(kwargs['model'], 'nmf')

    def test_extraction(self):
        argv = ['synsigrun', 'signeR', 'catalog.csv', '--K_range', '2', '6']
        with mock.patch('sys.argv', argv), mock.patch.object(cli, 'run_extraction') as run:
            cli.main()

        args, kwargs = run.call_args
        self.assertEqual(args, ('signeR', 'catalog.csv', 'synsigrun_out'))
        self.assertEqual(kwargs['K_range'], (2, 6))
        self.assertIsNone(kwargs['K_exact'])

    def test_default_out_dir(self):
        """
        Outputs default to a fresh subdirectory, not the directory holding the input.
        """
        argv = ['synsigrun', 'YAPSA', 'catalog.csv', '--gt_sigs', 'sigs.csv']
        with mock.patch('sys.argv', argv), mock.patch.object(cli, 'run_attribution') as run:
            cli.main()

        args, kwargs = run.call_args
        self.assertEqual(args[3], 'synsigrun_out')
        self.assertFalse(kwargs['overwrite'])

    def test_emu_convert(self):
        argv = ['synsigrun', 'EMu.convert', 'emu_dir', '--catalog', 'catalog.csv', '-o', 'out']
        with mock.patch('sys.argv', argv), mock.patch.object(cli, 'convert_emu_results') as run:
            cli.main()

        args, _ = run.call_args
        self.assertEqual(args, ('emu_dir', 'catalog.csv', 'out'))

    def test_missing_signatures(self):
        with mock.patch('sys.argv', ['synsigrun', 'YAPSA', 'catalog.csv']):
            with self.assertRaises(SystemExit):
                cli.main()

    def test_missing_k(self):
        with mock.patch('sys.argv', ['synsigrun', 'sigfit', 'catalog.csv']):
            with self.assertRaises(SystemExit):
                cli.main()

if __name__ == '__main__':
    unittest.main()
