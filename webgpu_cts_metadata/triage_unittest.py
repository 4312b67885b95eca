#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import unittest

from webgpu_cts_metadata import metadata
from webgpu_cts_metadata import triage
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata.outcomes import Platform

FAKE_METADATA_FILE_CONTENTS = """\
[cts.https.html?q=webgpu:a:*]
  expected:
    if os == "linux": CRASH
  [always fails]
    expected: FAIL
  [sometimes times out]
    expected: [PASS, TIMEOUT, NOTRUN]

[cts.https.html?q=webgpu:b:*]
  disabled: true
  [always fails]
    expected: FAIL
"""

A_URL_PATH = '_mozilla/webgpu/cts.https.html?q=webgpu:a:*'
B_URL_PATH = '_mozilla/webgpu/cts.https.html?q=webgpu:b:*'


class TriageUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self.metadata_files = {
        uu.FX_CTS_META_PATH: metadata.ParseFile(FAKE_METADATA_FILE_CONTENTS)
    }
    self.analysis = triage.Analyze(self.metadata_files)

  def testBuildExpectationFrame(self) -> None:
    frame = triage.BuildExpectationFrame(self.metadata_files)
    self.assertEqual(list(frame.columns), triage.COLUMNS)
    self.assertEqual(sorted(frame['test'].unique()), [A_URL_PATH, B_URL_PATH])
    # PASS is never notable.
    self.assertEqual(sorted(frame['category'].unique()),
                     sorted([
                         triage.CRASH, triage.FAILURE, triage.TIMEOUT,
                         triage.DISABLED_OR_SKIP
                     ]))

  def testCounts(self) -> None:
    self.assertEqual(
        self.analysis.GetCounts(Platform.WINDOWS, triage.FAILURE, True),
        triage.Counts(2, 2))
    self.assertEqual(
        self.analysis.GetCounts(Platform.WINDOWS, triage.TIMEOUT, False),
        triage.Counts(1, 1))
    self.assertEqual(
        self.analysis.GetCounts(Platform.WINDOWS, triage.DISABLED_OR_SKIP,
                                True), triage.Counts(1, 0))
    self.assertEqual(
        self.analysis.GetCounts(Platform.WINDOWS, triage.CRASH, True),
        triage.Counts(0, 0))
    self.assertEqual(
        self.analysis.GetCounts(Platform.LINUX, triage.CRASH, True),
        triage.Counts(1, 0))

  def testGetTests(self) -> None:
    self.assertEqual(
        self.analysis.GetTests(Platform.LINUX, triage.CRASH, True),
        [A_URL_PATH])
    self.assertEqual(
        self.analysis.GetTests(Platform.MAC_OS, triage.FAILURE, True),
        [A_URL_PATH, B_URL_PATH])

  def testFormatReportHidesZeroCounts(self) -> None:
    report = triage.FormatReport(self.analysis, False)
    self.assertEqual(
        report.split('\n')[:8], [
            'Windows:',
            '  HIGH PRIORITY:',
            '    1 test(s) with some portion marked as `disabled`',
            '  MEDIUM PRIORITY:',
            '    2 test(s) with some portion perma-`FAIL`ing, 2 subtests '
            'total',
            '  LOW PRIORITY:',
            '    1 test(s) with some portion intermittently returning '
            '`TIMEOUT`/`NOTRUN`, 1 subtest(s) total',
            'Linux:',
        ])
    self.assertIn('1 test(s) with some portion expecting permanent `CRASH`',
                  report)
    self.assertNotIn(' 0 test(s)', report)

  def testFormatReportShowsZeroCounts(self) -> None:
    report = triage.FormatReport(self.analysis, True)
    self.assertIn(
        '    0 test(s) with execution reporting permanent `ERROR`', report)
    self.assertEqual(report.count('HIGH PRIORITY'), 3)

  def testEmptyMetadata(self) -> None:
    analysis = triage.Analyze({})
    self.assertEqual(
        analysis.GetCounts(Platform.MAC_OS, triage.FAILURE, True),
        triage.Counts(0, 0))
    self.assertEqual(triage.FormatReport(analysis, False),
                     'Windows:\nLinux:\nMacOs:')


if __name__ == '__main__':
  unittest.main(verbosity=2)
