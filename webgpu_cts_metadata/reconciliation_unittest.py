#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import itertools
import logging
import unittest

from webgpu_cts_metadata import correlation
from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import reconciliation
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata.outcomes import (BuildProfile, Platform,
                                          SubtestOutcome, TestOutcome)

Policy = reconciliation.Policy

FAIL = uu.SubtestExpectation(SubtestOutcome.FAIL)
PASS = uu.SubtestExpectation(SubtestOutcome.PASS)
PASS_FAIL = uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL)
TIMEOUT_NOTRUN = uu.SubtestExpectation(SubtestOutcome.TIMEOUT,
                                       SubtestOutcome.NOTRUN)

CTS_TEST = uu.CtsTestName('api,foo:*')
CTS_URL = '/_mozilla/webgpu/' + CTS_TEST
OTHER_CTS_TEST = uu.CtsTestName('api,bar:*')
OTHER_CTS_URL = '/_mozilla/webgpu/' + OTHER_CTS_TEST


def _Uniform(expectation: data_types.Expectation
             ) -> data_types.NormalizedExpectations:
  return data_types.NormalizedExpectations.Uniform(expectation)


def _SubtestExpectations():
  """Yields a representative range of subtest Expectations."""
  for outcomes in ([SubtestOutcome.PASS], [SubtestOutcome.FAIL],
                   [SubtestOutcome.PASS, SubtestOutcome.FAIL],
                   [SubtestOutcome.TIMEOUT], [SubtestOutcome.CRASH]):
    yield uu.SubtestExpectation(*outcomes)


class ReconcileUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self.existing = _Uniform(FAIL)
    self.reported = uu.CreateReported(SubtestOutcome, [
        (Platform.LINUX, BuildProfile.DEBUG, SubtestOutcome.PASS),
    ])

  def testResetContradictory(self) -> None:
    """Tests that only contradicted configurations are replaced."""
    result = reconciliation.Reconcile(self.existing, self.reported,
                                      Policy.RESET_CONTRADICTORY)
    self.assertEqual(
        result.Expand(),
        uu.CreateExpanded(FAIL, {(Platform.LINUX, BuildProfile.DEBUG): PASS}))

  def testMerge(self) -> None:
    result = reconciliation.Reconcile(self.existing, self.reported,
                                      Policy.MERGE)
    self.assertEqual(
        result.Expand(),
        uu.CreateExpanded(FAIL,
                          {(Platform.LINUX, BuildProfile.DEBUG): PASS_FAIL}))

  def testResetAll(self) -> None:
    """Tests that unreported configurations fall back to the default."""
    result = reconciliation.Reconcile(self.existing, self.reported,
                                      Policy.RESET_ALL)
    self.assertEqual(result, _Uniform(PASS))

  def testResetContradictoryKeepsSuperset(self) -> None:
    result = reconciliation.Reconcile(_Uniform(PASS_FAIL), self.reported,
                                      Policy.RESET_CONTRADICTORY)
    self.assertEqual(result, _Uniform(PASS_FAIL))

  def testMissingExistingUsesReported(self) -> None:
    """Tests that every policy takes reported outcomes without metadata."""
    for policy in Policy:
      result = reconciliation.Reconcile(None, self.reported, policy)
      self.assertEqual(result, _Uniform(PASS))
    reported = uu.CreateReported(TestOutcome, [
        (Platform.MAC_OS, BuildProfile.OPTIMIZED, TestOutcome.CRASH),
    ])
    for policy in Policy:
      result = reconciliation.Reconcile(None, reported, policy)
      self.assertEqual(
          result.Expand(),
          uu.CreateExpanded(
              uu.TestExpectation(TestOutcome.OK), {
                  (Platform.MAC_OS, BuildProfile.OPTIMIZED):
                  uu.TestExpectation(TestOutcome.CRASH),
              }))

  def testNoReportsKeepsExisting(self) -> None:
    reported = data_types.ReportedOutcomes(SubtestOutcome)
    for policy in (Policy.RESET_CONTRADICTORY, Policy.MERGE):
      self.assertEqual(
          reconciliation.Reconcile(self.existing, reported, policy),
          self.existing)

  def testResultIsCollapsed(self) -> None:
    reported = uu.CreateReported(SubtestOutcome, [
        (p, bp, SubtestOutcome.PASS) for p in Platform for bp in BuildProfile
    ])
    result = reconciliation.Reconcile(self.existing, reported,
                                      Policy.RESET_CONTRADICTORY)
    self.assertEqual(result, _Uniform(PASS))
    self.assertEqual(result.Size(), 1)

  def testMergeNeverShrinks(self) -> None:
    """Tests that merged expectations are supersets of existing ones."""
    for existing_value, reported_value in itertools.product(
        list(_SubtestExpectations()), repeat=2):
      existing = data_types.NormalizedExpectations.FromExpanded(
          uu.CreateExpanded(PASS,
                            {(Platform.WINDOWS, BuildProfile.DEBUG):
                             existing_value}))
      reported = uu.CreateReported(SubtestOutcome, [
          (Platform.WINDOWS, BuildProfile.DEBUG, o) for o in reported_value
      ] + [(Platform.MAC_OS, BuildProfile.OPTIMIZED, o)
           for o in reported_value])
      result = reconciliation.Reconcile(existing, reported, Policy.MERGE)
      for config, e in result.Expand().Items():
        self.assertTrue(e.IsSuperset(existing.Expand()[config]))

  def testResetContradictoryIdempotent(self) -> None:
    for existing_value, reported_value in itertools.product(
        list(_SubtestExpectations()), repeat=2):
      existing = _Uniform(existing_value)
      reported = uu.CreateReported(SubtestOutcome, [
          (Platform.LINUX, bp, o) for bp in BuildProfile
          for o in reported_value
      ])
      once = reconciliation.Reconcile(existing, reported,
                                      Policy.RESET_CONTRADICTORY)
      twice = reconciliation.Reconcile(once, reported,
                                       Policy.RESET_CONTRADICTORY)
      self.assertEqual(once, twice)


class TaintUnittest(unittest.TestCase):

  def testTimeoutTaintsNotrun(self) -> None:
    self.assertEqual(
        reconciliation.TaintSubtestTimeoutsBySuspicion(
            uu.SubtestExpectation(SubtestOutcome.TIMEOUT)), TIMEOUT_NOTRUN)

  def testNotrunTaintsTimeout(self) -> None:
    self.assertEqual(
        reconciliation.TaintSubtestTimeoutsBySuspicion(
            uu.SubtestExpectation(SubtestOutcome.PASS,
                                  SubtestOutcome.NOTRUN)),
        uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.TIMEOUT,
                              SubtestOutcome.NOTRUN))

  def testUnsuspiciousUntouched(self) -> None:
    self.assertEqual(reconciliation.TaintSubtestTimeoutsBySuspicion(PASS_FAIL),
                     PASS_FAIL)

  def testIdempotent(self) -> None:
    members = list(SubtestOutcome)
    for size in range(1, len(members) + 1):
      for combination in itertools.combinations(members, size):
        e = uu.SubtestExpectation(*combination)
        tainted = reconciliation.TaintSubtestTimeoutsBySuspicion(e)
        self.assertEqual(
            reconciliation.TaintSubtestTimeoutsBySuspicion(tainted), tainted)
        self.assertTrue(
            tainted.IsDisjoint(TIMEOUT_NOTRUN)
            or tainted.IsSuperset(TIMEOUT_NOTRUN))

  def testNormalized(self) -> None:
    expectations = data_types.NormalizedExpectations.FromExpanded(
        uu.CreateExpanded(
            PASS, {
                (Platform.WINDOWS, BuildProfile.DEBUG):
                uu.SubtestExpectation(SubtestOutcome.TIMEOUT),
            }))
    self.assertEqual(
        reconciliation.TaintNormalizedSubtestExpectations(
            expectations).Expand(),
        uu.CreateExpanded(
            PASS, {(Platform.WINDOWS, BuildProfile.DEBUG): TIMEOUT_NOTRUN}))


class ReconcileEntryUnittest(unittest.TestCase):

  def testDisabledKept(self) -> None:
    entry = correlation.Entry(SubtestOutcome)
    entry.meta_props = data_types.TestProps(_Uniform(FAIL), is_disabled=True)
    entry.reported.Accumulate(Platform.LINUX, BuildProfile.DEBUG,
                              SubtestOutcome.FAIL)
    properties = reconciliation.ReconcileEntry(entry, Policy.RESET_ALL)
    self.assertTrue(properties.is_disabled)
    self.assertEqual(
        properties.expectations.Expand(),
        uu.CreateExpanded(PASS, {(Platform.LINUX, BuildProfile.DEBUG): FAIL}))

  def testMissingMetadata(self) -> None:
    entry = correlation.Entry(TestOutcome)
    entry.reported.Accumulate(Platform.LINUX, BuildProfile.DEBUG,
                              TestOutcome.OK)
    properties = reconciliation.ReconcileEntry(entry, Policy.MERGE)
    self.assertFalse(properties.is_disabled)
    self.assertTrue(properties.expectations.IsDefault())


class ReconcileAllUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self.diagnostics = diagnostics_module.Diagnostics()
    self.metadata_files = {
        uu.FX_CTS_META_PATH:
        data_types.MetadataFile(
            [('prefs', '[dom.webgpu.enabled:true]')], {
                CTS_TEST:
                data_types.MetadataTest(
                    data_types.TestProps(), {
                        'subtest': data_types.TestProps(_Uniform(FAIL)),
                    }),
            }),
    }

  def _Reconcile(self, reports, policy=Policy.RESET_CONTRADICTORY):
    return reconciliation.ReconcileAll(self.metadata_files,
                                       reports,
                                       policy,
                                       diagnostics=self.diagnostics)

  def testReconcilesReportedOutcomes(self) -> None:
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        (CTS_URL, TestOutcome.OK, [('subtest', SubtestOutcome.PASS)]),
    ])
    result = self._Reconcile([report])
    self.assertEqual(list(result.updated_files), [uu.FX_CTS_META_PATH])
    self.assertEqual(result.removed_files, [])
    self.assertIs(result.diagnostics, self.diagnostics)
    metadata_file = result.updated_files[uu.FX_CTS_META_PATH]
    self.assertEqual(metadata_file.properties,
                     [('prefs', '[dom.webgpu.enabled:true]')])
    test = metadata_file.tests[CTS_TEST]
    self.assertTrue(test.properties.expectations.IsDefault())
    self.assertEqual(
        test.subtests['subtest'].expectations.Expand(),
        uu.CreateExpanded(FAIL, {(Platform.LINUX, BuildProfile.DEBUG): PASS}))
    self.assertFalse(self.diagnostics.HasErrors())

  def testUnreportedTestRemoved(self) -> None:
    """Tests that tests without reports are dropped when resetting."""
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        (OTHER_CTS_URL, TestOutcome.OK, []),
    ])
    for policy in (Policy.RESET_CONTRADICTORY, Policy.RESET_ALL):
      self.diagnostics = diagnostics_module.Diagnostics()
      result = self._Reconcile([report], policy)
      tests = result.updated_files[uu.FX_CTS_META_PATH].tests
      self.assertEqual(list(tests), [OTHER_CTS_TEST])
      self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 1)

  def testUnreportedTestKeptOnMerge(self) -> None:
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        (OTHER_CTS_URL, TestOutcome.OK, []),
    ])
    result = self._Reconcile([report], Policy.MERGE)
    tests = result.updated_files[uu.FX_CTS_META_PATH].tests
    self.assertEqual(list(tests), [OTHER_CTS_TEST, CTS_TEST])
    self.assertEqual(tests[CTS_TEST].subtests['subtest'].expectations,
                     _Uniform(FAIL))
    self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 1)

  def testNoReportsKeepsTests(self) -> None:
    result = self._Reconcile([])
    test = result.updated_files[uu.FX_CTS_META_PATH].tests[CTS_TEST]
    self.assertEqual(test.subtests['subtest'].expectations, _Uniform(FAIL))
    self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 0)

  def testEmptyFileRemoved(self) -> None:
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        ('/_mozilla/webgpu/chunked/cts.https.html?q=webgpu:api,bar:*',
         TestOutcome.OK, []),
    ])
    result = self._Reconcile([report])
    self.assertEqual(result.removed_files, [uu.FX_CTS_META_PATH])
    self.assertEqual(list(result.updated_files),
                     [uu.FX_META_DIR + '/chunked/cts.https.html.ini'])

  def testNewFileCreated(self) -> None:
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        (CTS_URL, TestOutcome.OK, [('subtest', SubtestOutcome.FAIL)]),
        ('/_mozilla/webgpu/new.https.html', TestOutcome.CRASH, []),
    ])
    result = self._Reconcile([report])
    new_path = uu.FX_META_DIR + '/new.https.html.ini'
    self.assertEqual(list(result.updated_files),
                     [uu.FX_CTS_META_PATH, new_path])
    new_file = result.updated_files[new_path]
    self.assertEqual(new_file.properties, [])
    self.assertEqual(
        new_file.tests['new.https.html'].properties.expectations.Expand(),
        uu.CreateExpanded(
            uu.TestExpectation(TestOutcome.OK), {
                (Platform.LINUX, BuildProfile.DEBUG):
                uu.TestExpectation(TestOutcome.CRASH),
            }))
    warnings = self.diagnostics.AtLevel(logging.WARNING)
    self.assertEqual(len(warnings), 1)
    self.assertIn(new_path, warnings[0])

  def testRelocatedTest(self) -> None:
    moved_path = uu.FX_META_DIR + '/moved/cts.https.html.ini'
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        ('/_mozilla/webgpu/moved/' + CTS_TEST, TestOutcome.OK,
         [('subtest', SubtestOutcome.FAIL)]),
    ])
    result = self._Reconcile([report])
    self.assertEqual(list(result.updated_files), [moved_path])
    self.assertEqual(result.removed_files, [uu.FX_CTS_META_PATH])
    test = result.updated_files[moved_path].tests[CTS_TEST]
    self.assertEqual(test.subtests['subtest'].expectations, _Uniform(FAIL))

  def testSubtestsTainted(self) -> None:
    reports = [
        uu.CreateExecutionReport(platform, BuildProfile.DEBUG, [
            (CTS_URL, TestOutcome.TIMEOUT,
             [('subtest', SubtestOutcome.FAIL),
              ('timing out', SubtestOutcome.TIMEOUT),
              ('not run', SubtestOutcome.NOTRUN)]),
        ]) for platform in Platform
    ]
    result = self._Reconcile(reports)
    subtests = result.updated_files[uu.FX_CTS_META_PATH].tests[
        CTS_TEST].subtests
    self.assertEqual(list(subtests), ['not run', 'subtest', 'timing out'])
    for name in ('not run', 'timing out'):
      self.assertEqual(
          subtests[name].expectations.Expand(),
          uu.CreateExpanded(PASS, {(p, BuildProfile.DEBUG): TIMEOUT_NOTRUN
                                   for p in Platform}))
    # The notice is only given once per run.
    infos = [
        m for m in self.diagnostics.AtLevel(logging.INFO) if 'taint' in m
    ]
    self.assertEqual(len(infos), 1)

  def testBadMetadataPathIsError(self) -> None:
    self.metadata_files['somewhere/else.html.ini'] = data_types.MetadataFile(
        tests={'else.html': data_types.MetadataTest()})
    result = self._Reconcile([])
    self.assertTrue(self.diagnostics.HasErrors())
    self.assertIn(uu.FX_CTS_META_PATH, result.updated_files)
    # The file is neither rewritten nor removed.
    self.assertNotIn('somewhere/else.html.ini', result.updated_files)
    self.assertEqual(result.removed_files, [])

  def testFileWithOneBadTestPathLeftUnchanged(self) -> None:
    """Tests that a file mixing good and bad test paths is not rewritten."""
    self.metadata_files[uu.FX_CTS_META_PATH].tests['mismatched.html'] = (
        data_types.MetadataTest())
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        (CTS_URL, TestOutcome.OK, [('subtest', SubtestOutcome.PASS)]),
    ])
    for policy in Policy:
      self.diagnostics = diagnostics_module.Diagnostics()
      result = self._Reconcile([report], policy)
      self.assertTrue(self.diagnostics.HasErrors())
      self.assertNotIn(uu.FX_CTS_META_PATH, result.updated_files)
      self.assertEqual(result.removed_files, [])

  def testEmptyDiagnosticsUsed(self) -> None:
    """Tests that a caller's still-empty Diagnostics receives messages."""
    self.metadata_files['somewhere/else.html.ini'] = data_types.MetadataFile(
        tests={'else.html': data_types.MetadataTest()})
    self.assertEqual(len(self.diagnostics), 0)
    result = self._Reconcile([])
    self.assertIs(result.diagnostics, self.diagnostics)
    self.assertTrue(self.diagnostics.HasErrors())

  def testBadReportPathIsError(self) -> None:
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        ('no/leading/slash.html', TestOutcome.OK, []),
        (CTS_URL, TestOutcome.OK, [('subtest', SubtestOutcome.PASS)]),
    ])
    result = self._Reconcile([report])
    self.assertTrue(self.diagnostics.HasErrors())
    self.assertIn(CTS_TEST, result.updated_files[uu.FX_CTS_META_PATH].tests)

  def testTestsSortedByName(self) -> None:
    report = uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
        (OTHER_CTS_URL, TestOutcome.OK, []),
        (CTS_URL, TestOutcome.OK, []),
    ])
    result = self._Reconcile([report])
    self.assertEqual(list(result.updated_files[uu.FX_CTS_META_PATH].tests),
                     sorted([CTS_TEST, OTHER_CTS_TEST]))


if __name__ == '__main__':
  unittest.main(verbosity=2)
