#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import argparse
import logging
import os
import unittest
from unittest import mock

from pyfakefs import fake_filesystem_unittest

from webgpu_cts_metadata import argument_parsing
from webgpu_cts_metadata import paths
from webgpu_cts_metadata import reconciliation


def _CreateParser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser()
  argument_parsing.AddCommonArguments(parser)
  argument_parsing.AddUpdateExpectedArguments(parser)
  return parser


class SetLoggingVerbosityUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self._logger_patcher = mock.patch.object(logging, 'getLogger')
    self._logger_mock = self._logger_patcher.start()
    self.addCleanup(self._logger_patcher.stop)

  def _GetLevel(self, argv) -> int:
    args = _CreateParser().parse_args(argv)
    argument_parsing.SetLoggingVerbosity(args)
    return self._logger_mock.return_value.setLevel.call_args[0][0]

  def testDefaultIsInfo(self) -> None:
    self.assertEqual(self._GetLevel([]), logging.INFO)

  def testVerbose(self) -> None:
    self.assertEqual(self._GetLevel(['-v']), logging.DEBUG)
    self.assertEqual(self._GetLevel(['-vv']), logging.DEBUG)

  def testQuiet(self) -> None:
    self.assertEqual(self._GetLevel(['-q']), logging.ERROR)
    self.assertEqual(self._GetLevel(['-q', '-v']), logging.ERROR)


class UpdateExpectedArgumentsUnittest(unittest.TestCase):

  def testDefaults(self) -> None:
    args = _CreateParser().parse_args([])
    self.assertEqual(args.report_paths, [])
    self.assertEqual(args.report_globs, [])
    self.assertEqual(args.preset, 'reset-contradictory')
    self.assertIsNone(args.jobs)
    self.assertEqual(args.browser, 'firefox')

  def testGlobsAccumulate(self) -> None:
    args = argument_parsing.ParseInterleavedArgs(
        _CreateParser(),
        ['a.json', '--glob', 'x/**/*.json', '--glob', 'y/*.json', 'b.json'])
    self.assertEqual(args.report_paths, ['a.json', 'b.json'])
    self.assertEqual(args.report_globs, ['x/**/*.json', 'y/*.json'])

  def testReportPathsAfterOptions(self) -> None:
    args = argument_parsing.ParseInterleavedArgs(
        _CreateParser(), ['--preset', 'same-fx', 'a.json', '-j', '2', 'b.json'])
    self.assertEqual(args.report_paths, ['a.json', 'b.json'])
    self.assertEqual(args.preset, 'same-fx')
    self.assertEqual(args.jobs, 2)

  def testUnknownOptionStillRejected(self) -> None:
    with self.assertRaises(SystemExit):
      argument_parsing.ParseInterleavedArgs(_CreateParser(),
                                            ['a.json', '--bogus', 'b.json'])

  def testLeftoverWithoutReportPathsRejected(self) -> None:
    parser = argparse.ArgumentParser()
    argument_parsing.AddCommonArguments(parser)
    with self.assertRaises(SystemExit):
      argument_parsing.ParseInterleavedArgs(parser, ['-v', 'a.json'])

  def testInvalidPreset(self) -> None:
    with self.assertRaises(SystemExit):
      _CreateParser().parse_args(['--preset', 'bogus'])

  def testPresetAliases(self) -> None:
    self.assertEqual(argument_parsing.PRESETS['new-fx'],
                     reconciliation.Policy.RESET_CONTRADICTORY)
    self.assertEqual(argument_parsing.PRESETS['same-fx'],
                     reconciliation.Policy.MERGE)
    self.assertEqual(argument_parsing.PRESETS['reset-all'],
                     reconciliation.Policy.RESET_ALL)


class CheckoutUnittest(fake_filesystem_unittest.TestCase):

  def setUp(self) -> None:
    self.setUpPyfakefs()
    self.fs.create_dir('/checkout/.hg')
    self.fs.create_dir('/checkout/testing/web-platform')
    self.fs.create_dir('/elsewhere')

  def testFindCheckoutFromSubdirectory(self) -> None:
    self.assertEqual(
        argument_parsing.FindCheckout('/checkout/testing/web-platform'),
        os.path.abspath('/checkout'))

  def testFindCheckoutNotFound(self) -> None:
    self.assertIsNone(argument_parsing.FindCheckout('/elsewhere'))

  def testSetCheckoutExplicit(self) -> None:
    args = argparse.Namespace(checkout='/elsewhere')
    argument_parsing.SetCheckout(args)
    self.assertEqual(args.checkout, os.path.abspath('/elsewhere'))

  def testSetCheckoutDetected(self) -> None:
    os.chdir('/checkout/testing')
    args = argparse.Namespace(checkout=None)
    argument_parsing.SetCheckout(args)
    self.assertEqual(args.checkout, os.path.abspath('/checkout'))

  def testSetCheckoutNotFound(self) -> None:
    os.chdir('/elsewhere')
    with self.assertRaises(RuntimeError):
      argument_parsing.SetCheckout(argparse.Namespace(checkout=None))

  def testPerformCommonPostParseSetup(self) -> None:
    args = _CreateParser().parse_args(
        ['--checkout', '/checkout', '--browser', 'servo', '--preset',
         'same-fx'])
    with mock.patch.object(argument_parsing, 'SetLoggingVerbosity'):
      argument_parsing.PerformCommonPostParseSetup(args)
    self.assertEqual(args.browser, paths.Browser.SERVO)
    self.assertEqual(args.policy, reconciliation.Policy.MERGE)
    self.assertEqual(args.checkout, os.path.abspath('/checkout'))


if __name__ == '__main__':
  unittest.main(verbosity=2)
