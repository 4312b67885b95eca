#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import json
import logging
import unittest

from pyfakefs import fake_filesystem_unittest

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import reports
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata.outcomes import (BuildProfile, Platform,
                                          SubtestOutcome, TestOutcome)

CTS_URL = '/_mozilla/webgpu/' + uu.CtsTestName('api,foo:*')


class DecodeRunInfoUnittest(unittest.TestCase):

  def testKnownPlatforms(self) -> None:
    self.assertEqual(reports.DecodeRunInfo({
        'os': 'win',
        'debug': True
    }), (Platform.WINDOWS, BuildProfile.DEBUG))
    self.assertEqual(reports.DecodeRunInfo({
        'os': 'mac',
        'debug': False
    }), (Platform.MAC_OS, BuildProfile.OPTIMIZED))

  def testUnknownPlatform(self) -> None:
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeRunInfo({'os': 'android', 'debug': False})

  def testMissingDebug(self) -> None:
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeRunInfo({'os': 'linux'})

  def testWrongType(self) -> None:
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeRunInfo({'os': 'linux', 'debug': 'yes'})


class DecodeReportUnittest(unittest.TestCase):

  def testDecodesEntries(self) -> None:
    contents = uu.CreateReportJson('linux', True, [
        uu.CreateReportResult(CTS_URL, 'OK', [('a', 'PASS'), ('b', 'FAIL')]),
        uu.CreateReportResult('/_mozilla/webgpu/other.html', 'CRASH'),
    ])
    report, warnings = reports.DecodeReport(contents)
    self.assertEqual(warnings, [])
    self.assertEqual(
        report,
        uu.CreateExecutionReport(Platform.LINUX, BuildProfile.DEBUG, [
            (CTS_URL, TestOutcome.OK, [('a', SubtestOutcome.PASS),
                                       ('b', SubtestOutcome.FAIL)]),
            ('/_mozilla/webgpu/other.html', TestOutcome.CRASH, []),
        ]))

  def testMissingStatus(self) -> None:
    result = uu.CreateReportResult(CTS_URL, '')
    del result['status']
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeReport(uu.CreateReportJson('win', False, [result]))

  def testMissingSubtests(self) -> None:
    result = uu.CreateReportResult(CTS_URL, 'OK')
    del result['subtests']
    report, _ = reports.DecodeReport(
        uu.CreateReportJson('win', False, [result]))
    self.assertEqual(report.entries[0].subtests, [])

  def testNullSubtests(self) -> None:
    result = uu.CreateReportResult(CTS_URL, 'OK')
    result['subtests'] = None
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeReport(uu.CreateReportJson('win', False, [result]))

  def testEmptyStatusIsTimeout(self) -> None:
    report, warnings = reports.DecodeReport(
        uu.CreateReportJson('win', False,
                            [uu.CreateReportResult(CTS_URL, '')]))
    self.assertEqual(report.entries[0].outcome, TestOutcome.TIMEOUT)
    self.assertEqual(warnings, [])

  def testUnknownStatusWarns(self) -> None:
    report, warnings = reports.DecodeReport(
        uu.CreateReportJson('win', False,
                            [uu.CreateReportResult(CTS_URL, 'PASS')]))
    self.assertEqual(report.entries[0].outcome, TestOutcome.TIMEOUT)
    self.assertEqual(len(warnings), 1)
    self.assertIn('PASS', warnings[0])

  def testUnknownSubtestStatus(self) -> None:
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeReport(
          uu.CreateReportJson(
              'win', False,
              [uu.CreateReportResult(CTS_URL, 'OK', [('a', 'OK')])]))

  def testMissingResults(self) -> None:
    contents = uu.CreateReportJson('win', False, [])
    del contents['results']
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeReport(contents)

  def testMissingTestName(self) -> None:
    result = uu.CreateReportResult(CTS_URL, 'OK')
    del result['test']
    with self.assertRaises(reports.ReportDecodeError):
      reports.DecodeReport(uu.CreateReportJson('win', False, [result]))


class LoadReportsUnittest(fake_filesystem_unittest.TestCase):

  def setUp(self) -> None:
    self.setUpPyfakefs()
    self.diagnostics = diagnostics_module.Diagnostics()

  def _WriteReport(self, path: str, contents) -> None:
    self.fs.create_file(path, contents=json.dumps(contents))

  def testLoadsAllReports(self) -> None:
    """Tests that every report is returned, in any order."""
    expected = []
    report_paths = []
    for index, (os_name, platform) in enumerate([('win', Platform.WINDOWS),
                                                 ('linux', Platform.LINUX),
                                                 ('mac', Platform.MAC_OS)]):
      path = '/reports/%d/wptreport.json' % index
      self._WriteReport(
          path,
          uu.CreateReportJson(os_name, False,
                              [uu.CreateReportResult(CTS_URL, 'OK')]))
      report_paths.append(path)
      expected.append(
          data_types.ExecutionReport(platform, BuildProfile.OPTIMIZED, [
              data_types.TestExecutionEntry(CTS_URL, TestOutcome.OK, []),
          ]))
    loaded, had_errors = reports.LoadReports(report_paths, self.diagnostics,
                                             num_workers=2)
    self.assertFalse(had_errors)
    self.assertCountEqual(loaded, expected)
    self.assertEqual(len(self.diagnostics), 0)

  def testNoReports(self) -> None:
    loaded, had_errors = reports.LoadReports([], self.diagnostics)
    self.assertEqual(loaded, [])
    self.assertFalse(had_errors)

  def testFailuresRecorded(self) -> None:
    """Tests that bad files are reported without stopping the others."""
    self._WriteReport(
        '/reports/good.json',
        uu.CreateReportJson('linux', True,
                            [uu.CreateReportResult(CTS_URL, 'OK')]))
    self.fs.create_file('/reports/bad.json', contents='{not json')
    self._WriteReport('/reports/wrong.json', {'results': []})
    null_subtests = uu.CreateReportResult(CTS_URL, 'OK')
    null_subtests['subtests'] = None
    self._WriteReport('/reports/null_subtests.json',
                      uu.CreateReportJson('linux', True, [null_subtests]))
    loaded, had_errors = reports.LoadReports([
        '/reports/good.json',
        '/reports/bad.json',
        '/reports/wrong.json',
        '/reports/null_subtests.json',
        '/reports/missing.json',
    ], self.diagnostics)
    self.assertTrue(had_errors)
    self.assertEqual(len(loaded), 1)
    errors = self.diagnostics.AtLevel(logging.ERROR)
    self.assertEqual(len(errors), 4)
    for path in ('bad.json', 'wrong.json', 'null_subtests.json',
                 'missing.json'):
      self.assertTrue(any(path in e for e in errors))

  def testWarningsRecorded(self) -> None:
    self._WriteReport(
        '/reports/report.json',
        uu.CreateReportJson('linux', True,
                            [uu.CreateReportResult(CTS_URL, 'PASS')]))
    loaded, had_errors = reports.LoadReports(['/reports/report.json'],
                                             self.diagnostics)
    self.assertFalse(had_errors)
    self.assertEqual(len(loaded), 1)
    self.assertEqual(len(self.diagnostics.AtLevel(logging.WARNING)), 1)


if __name__ == '__main__':
  unittest.main(verbosity=2)
