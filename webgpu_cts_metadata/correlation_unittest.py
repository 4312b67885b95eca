#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import logging
import unittest

from webgpu_cts_metadata import correlation
from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import paths
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata.outcomes import (BuildProfile, Platform,
                                          SubtestOutcome, TestOutcome)

CTS_PATH = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                          '?q=webgpu:api,foo:*')
MOVED_CTS_PATH = paths.TestPath(paths.FX_PRIVATE_SCOPE,
                                'webgpu/cts/cts.https.html',
                                '?q=webgpu:api,foo:*')
OTHER_PATH = paths.TestPath(paths.FX_PUBLIC_SCOPE, 'webgpu/other.https.html')


def _FailingProps() -> data_types.TestProps:
  return data_types.TestProps(
      data_types.NormalizedExpectations.Uniform(
          uu.TestExpectation(TestOutcome.ERROR)))


class IngestMetadataEntryUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self.diagnostics = diagnostics_module.Diagnostics()
    self.store = correlation.CorrelationStore(self.diagnostics)

  def testInstallsPropertiesAndSubtests(self) -> None:
    subtest_props = data_types.TestProps(
        data_types.NormalizedExpectations.Uniform(
            uu.SubtestExpectation(SubtestOutcome.FAIL)))
    self.store.IngestMetadataEntry(CTS_PATH, _FailingProps(),
                                   {'subtest': subtest_props})
    items = list(self.store.Items())
    self.assertEqual(len(items), 1)
    test_path, test_entry = items[0]
    self.assertEqual(test_path, CTS_PATH)
    self.assertEqual(test_entry.entry.meta_props, _FailingProps())
    self.assertEqual(test_entry.subtests['subtest'].meta_props, subtest_props)
    self.assertTrue(test_entry.entry.reported.IsEmpty())

  def testDuplicateKeepsFirst(self) -> None:
    """Tests that the first metadata entry for an identity wins."""
    self.store.IngestMetadataEntry(CTS_PATH, _FailingProps())
    self.store.IngestMetadataEntry(MOVED_CTS_PATH, data_types.TestProps())
    self.store.IngestMetadataEntry(MOVED_CTS_PATH, data_types.TestProps())
    items = list(self.store.Items())
    self.assertEqual(len(items), 1)
    test_path, test_entry = items[0]
    self.assertEqual(test_path, CTS_PATH)
    self.assertEqual(test_entry.entry.meta_props, _FailingProps())
    # Only one warning is given per identity.
    self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 1)

  def testDuplicateNonCtsKeepsFirst(self) -> None:
    self.store.IngestMetadataEntry(OTHER_PATH, _FailingProps())
    self.store.IngestMetadataEntry(OTHER_PATH, data_types.TestProps())
    self.assertEqual(len(self.store), 1)
    _, test_entry = list(self.store.Items())[0]
    self.assertEqual(test_entry.entry.meta_props, _FailingProps())
    self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 1)


class IngestReportEntryUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self.diagnostics = diagnostics_module.Diagnostics()
    self.store = correlation.CorrelationStore(self.diagnostics)

  def testAccumulatesOutcomes(self) -> None:
    self.store.IngestReportEntry(CTS_PATH, TestOutcome.OK, Platform.LINUX,
                                 BuildProfile.DEBUG, [
                                     data_types.SubtestExecutionEntry(
                                         'subtest', SubtestOutcome.PASS),
                                 ])
    self.store.IngestReportEntry(CTS_PATH, TestOutcome.TIMEOUT, Platform.LINUX,
                                 BuildProfile.DEBUG, [
                                     data_types.SubtestExecutionEntry(
                                         'subtest', SubtestOutcome.TIMEOUT),
                                 ])
    _, test_entry = list(self.store.Items())[0]
    self.assertEqual(
        test_entry.entry.reported.Get(Platform.LINUX, BuildProfile.DEBUG),
        uu.TestExpectation(TestOutcome.OK, TestOutcome.TIMEOUT))
    self.assertEqual(
        test_entry.subtests['subtest'].reported.Get(Platform.LINUX,
                                                    BuildProfile.DEBUG),
        uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.TIMEOUT))
    self.assertIsNone(test_entry.subtests['subtest'].meta_props)
    self.assertEqual(len(self.diagnostics), 0)

  def testNewerReportedPathWins(self) -> None:
    self.store.IngestReportEntry(CTS_PATH, TestOutcome.OK, Platform.LINUX,
                                 BuildProfile.DEBUG)
    self.store.IngestReportEntry(MOVED_CTS_PATH, TestOutcome.OK,
                                 Platform.MAC_OS, BuildProfile.DEBUG)
    items = list(self.store.Items())
    self.assertEqual(len(items), 1)
    test_path, test_entry = items[0]
    self.assertEqual(test_path, MOVED_CTS_PATH)
    # Outcomes from both paths are kept.
    self.assertIsNotNone(
        test_entry.entry.reported.Get(Platform.LINUX, BuildProfile.DEBUG))
    self.assertIsNotNone(
        test_entry.entry.reported.Get(Platform.MAC_OS, BuildProfile.DEBUG))
    self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 1)


class CorrelationUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self.diagnostics = diagnostics_module.Diagnostics()
    self.store = correlation.CorrelationStore(self.diagnostics)

  def testMetadataAndReportJoined(self) -> None:
    self.store.IngestMetadataEntry(CTS_PATH, _FailingProps())
    self.store.IngestReportEntry(CTS_PATH, TestOutcome.OK, Platform.LINUX,
                                 BuildProfile.DEBUG)
    self.assertEqual(len(self.store), 1)
    test_path, test_entry = list(self.store.Items())[0]
    self.assertEqual(test_path, CTS_PATH)
    self.assertIsNotNone(test_entry.entry.meta_props)
    self.assertFalse(test_entry.entry.reported.IsEmpty())
    self.assertEqual(len(self.diagnostics), 0)

  def testReportedPathWinsOnRelocation(self) -> None:
    """Tests that a CTS test reported elsewhere is moved there."""
    self.store.IngestMetadataEntry(CTS_PATH, _FailingProps())
    self.store.IngestReportEntry(MOVED_CTS_PATH, TestOutcome.OK,
                                 Platform.LINUX, BuildProfile.DEBUG)
    test_path, test_entry = list(self.store.Items())[0]
    self.assertEqual(test_path, MOVED_CTS_PATH)
    self.assertEqual(test_entry.entry.meta_props, _FailingProps())
    self.assertEqual(len(self.diagnostics.AtLevel(logging.INFO)), 1)

  def testNonCtsTestsNotJoinedAcrossPaths(self) -> None:
    self.store.IngestMetadataEntry(OTHER_PATH, _FailingProps())
    self.store.IngestReportEntry(
        paths.TestPath(paths.FX_PUBLIC_SCOPE, 'webgpu/other2.https.html'),
        TestOutcome.OK, Platform.LINUX, BuildProfile.DEBUG)
    self.assertEqual(len(self.store), 2)

  def testCtsRecordsYieldedFirst(self) -> None:
    self.store.IngestMetadataEntry(OTHER_PATH, _FailingProps())
    self.store.IngestMetadataEntry(CTS_PATH, _FailingProps())
    self.assertEqual([p for p, _ in self.store.Items()],
                     [CTS_PATH, OTHER_PATH])

  def testUnreconcilableRecord(self) -> None:
    record = correlation.CorrelationRecord()
    with self.assertRaises(correlation.UnreconcilableEntryError):
      record.ResolveOutputPath(self.diagnostics)


class TestEntryUnittest(unittest.TestCase):

  def testGetSubtestCreatesOnce(self) -> None:
    test_entry = correlation.TestEntry()
    subtest = test_entry.GetSubtest('foo')
    self.assertIs(test_entry.GetSubtest('foo'), subtest)
    self.assertIs(subtest.reported.outcome_type, SubtestOutcome)
    self.assertIs(test_entry.entry.reported.outcome_type, TestOutcome)


if __name__ == '__main__':
  unittest.main(verbosity=2)
