#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import contextlib
import io
import json
import os
import unittest
from unittest import mock

from pyfakefs import fake_filesystem_unittest

from webgpu_cts_metadata import argument_parsing
from webgpu_cts_metadata import paths
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata import update_expectations

CHECKOUT = '/checkout'
META_DIR = os.path.join(CHECKOUT, *uu.FX_META_DIR.split('/'))
CTS_META_FILE = os.path.join(META_DIR, 'cts.https.html.ini')
OLD_META_FILE = os.path.join(META_DIR, 'old.https.html.ini')
DIR_META_FILE = os.path.join(META_DIR, '__dir__.ini')

CTS_TEST = uu.CtsTestName('api,foo:*')
CTS_URL = '/_mozilla/webgpu/' + CTS_TEST

FAKE_CTS_METADATA = """\
[cts.https.html?q=webgpu:api,foo:*]
  [subtest]
    expected: FAIL
"""

FAKE_OLD_METADATA = """\
[old.https.html]
  expected: CRASH
"""

FAKE_DIR_METADATA = 'tags: [webgpu]\n'


class UpdateExpectationsUnittestBase(fake_filesystem_unittest.TestCase):

  def setUp(self) -> None:
    self.setUpPyfakefs()
    self.fs.create_dir(os.path.join(CHECKOUT, '.hg'))
    self.fs.create_file(CTS_META_FILE, contents=FAKE_CTS_METADATA)
    self.fs.create_file(OLD_META_FILE, contents=FAKE_OLD_METADATA)
    self.fs.create_file(DIR_META_FILE, contents=FAKE_DIR_METADATA)

    self._verbosity_patcher = mock.patch.object(argument_parsing,
                                                'SetLoggingVerbosity')
    self._verbosity_patcher.start()
    self.addCleanup(self._verbosity_patcher.stop)

  def _ReadFile(self, path: str) -> str:
    with open(path, encoding='utf-8') as infile:
      return infile.read()

  def _WriteReport(self, path: str, results, os_name='linux',
                   debug=True) -> None:
    self.fs.create_file(path,
                        contents=json.dumps(
                            uu.CreateReportJson(os_name, debug, results)))

  def _Run(self, *argv) -> int:
    return update_expectations.main(['--checkout', CHECKOUT] + list(argv))


class ReadMetadataFilesUnittest(UpdateExpectationsUnittestBase):

  def testSkipsDirMetadata(self) -> None:
    contents_by_path = update_expectations.ReadMetadataFiles(
        CHECKOUT, paths.Browser.FIREFOX)
    self.assertEqual(list(contents_by_path), [
        uu.FX_CTS_META_PATH,
        uu.FX_META_DIR + '/old.https.html.ini',
    ])
    self.assertEqual(contents_by_path[uu.FX_CTS_META_PATH], FAKE_CTS_METADATA)

  def testServoDirectory(self) -> None:
    self.assertEqual(
        update_expectations.ReadMetadataFiles(CHECKOUT, paths.Browser.SERVO),
        {})


class FindReportPathsUnittest(UpdateExpectationsUnittestBase):

  def testCombinesPathsAndGlobs(self) -> None:
    self._WriteReport('/reports/b/wptreport.json', [])
    self._WriteReport('/reports/a/wptreport.json', [])
    self.assertEqual(
        update_expectations.FindReportPaths(['/direct.json'],
                                            ['/reports/**/wptreport.json']),
        [
            '/direct.json',
            os.path.join('/reports', 'a', 'wptreport.json'),
            os.path.join('/reports', 'b', 'wptreport.json'),
        ])

  def testEmptyGlobOnly(self) -> None:
    self.assertIsNone(
        update_expectations.FindReportPaths([], ['/reports/*.json']))

  def testEmptyGlobWithPaths(self) -> None:
    self.assertEqual(
        update_expectations.FindReportPaths(['/direct.json'],
                                            ['/reports/*.json']),
        ['/direct.json'])


class UpdateExpectedUnittest(UpdateExpectationsUnittestBase):

  def testUpdatesMetadata(self) -> None:
    """Tests a full run that rewrites one file and removes another."""
    self._WriteReport('/reports/linux/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'PASS')]),
    ])
    self.assertEqual(
        self._Run('update-expected', '--glob', '/reports/**/wptreport.json'),
        0)
    self.assertEqual(
        self._ReadFile(CTS_META_FILE), """\
[cts.https.html?q=webgpu:api,foo:*]
  [subtest]
    expected:
      if os == "linux" and debug: PASS
      FAIL
""")
    self.assertFalse(os.path.exists(OLD_META_FILE))
    self.assertEqual(self._ReadFile(DIR_META_FILE), FAKE_DIR_METADATA)

  def testMergePreset(self) -> None:
    self._WriteReport('/reports/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'PASS')]),
    ],
                      os_name='win',
                      debug=False)
    self.assertEqual(
        self._Run('process-reports', '--preset', 'same-fx',
                  '/reports/wptreport.json'), 0)
    self.assertEqual(
        self._ReadFile(CTS_META_FILE), """\
[cts.https.html?q=webgpu:api,foo:*]
  [subtest]
    expected:
      if os == "win" and not debug: [PASS, FAIL]
      FAIL
""")
    # Unreported tests are kept when merging.
    self.assertEqual(self._ReadFile(OLD_META_FILE), FAKE_OLD_METADATA)

  def testReportPathAfterOption(self) -> None:
    self._WriteReport('/reports/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'PASS')]),
    ],
                      os_name='win',
                      debug=False)
    self.assertEqual(
        self._Run('update-expected', '--preset', 'same-fx',
                  '/reports/wptreport.json', '-j', '1'), 0)
    self.assertIn('if os == "win" and not debug: [PASS, FAIL]',
                  self._ReadFile(CTS_META_FILE))

  def testCreatesNewFiles(self) -> None:
    self._WriteReport('/reports/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'FAIL')]),
        uu.CreateReportResult('/_mozilla/webgpu/new/thing.https.html',
                              'ERROR'),
    ])
    self.assertEqual(self._Run('update-expected', '/reports/wptreport.json'),
                     0)
    self.assertEqual(
        self._ReadFile(os.path.join(META_DIR, 'new', 'thing.https.html.ini')),
        """\
[thing.https.html]
  expected:
    if os == "linux" and debug: ERROR
    OK
""")

  def testNoReportsFoundByGlob(self) -> None:
    self.assertEqual(
        self._Run('update-expected', '--glob', '/reports/*.json'), 1)
    self.assertEqual(self._ReadFile(CTS_META_FILE), FAKE_CTS_METADATA)

  def testUnreadableReport(self) -> None:
    self.fs.create_file('/reports/bad.json', contents='{')
    self.assertEqual(self._Run('update-expected', '/reports/bad.json'), 1)
    self.assertEqual(self._ReadFile(CTS_META_FILE), FAKE_CTS_METADATA)
    self.assertTrue(os.path.exists(OLD_META_FILE))

  def testInvalidMetadata(self) -> None:
    self.fs.create_file(os.path.join(META_DIR, 'bad.https.html.ini'),
                        contents='[bad.https.html]\n  expected: NOPE\n')
    self._WriteReport('/reports/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'PASS')]),
    ])
    self.assertEqual(self._Run('update-expected', '/reports/wptreport.json'),
                     1)
    self.assertEqual(self._ReadFile(CTS_META_FILE), FAKE_CTS_METADATA)

  def testBadReportedPathFailsRun(self) -> None:
    self._WriteReport('/reports/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'PASS')]),
        uu.CreateReportResult('no-slash.html', 'OK'),
    ])
    self.assertEqual(self._Run('update-expected', '/reports/wptreport.json'),
                     1)

  def testFileWithBadTestPathNotRewritten(self) -> None:
    mixed_metadata = (FAKE_CTS_METADATA +
                      '[mismatched.html]\n  expected: CRASH\n')
    with open(CTS_META_FILE, 'w', encoding='utf-8') as outfile:
      outfile.write(mixed_metadata)
    self._WriteReport('/reports/wptreport.json', [
        uu.CreateReportResult(CTS_URL, 'OK', [('subtest', 'PASS')]),
    ])
    self.assertEqual(self._Run('update-expected', '/reports/wptreport.json'),
                     1)
    self.assertEqual(self._ReadFile(CTS_META_FILE), mixed_metadata)


class FixupUnittest(UpdateExpectationsUnittestBase):

  def testNormalizesAndTaints(self) -> None:
    with open(CTS_META_FILE, 'w', encoding='utf-8') as outfile:
      outfile.write("""\
[cts.https.html?q=webgpu:api,foo:*]
  expected: OK

  [subtest]
    expected:
      if os == "mac": TIMEOUT
""")
    self.assertEqual(self._Run('fmt'), 0)
    self.assertEqual(
        self._ReadFile(CTS_META_FILE), """\
[cts.https.html?q=webgpu:api,foo:*]
  [subtest]
    expected:
      if os == "mac": [TIMEOUT, NOTRUN]
      PASS
""")
    self.assertEqual(self._ReadFile(OLD_META_FILE), FAKE_OLD_METADATA)

  def testInvalidMetadata(self) -> None:
    with open(CTS_META_FILE, 'w', encoding='utf-8') as outfile:
      outfile.write('[cts.https.html]\n   expected: OK\n')
    self.assertEqual(self._Run('fixup'), 1)


class TriageUnittest(UpdateExpectationsUnittestBase):

  def testPrintsReport(self) -> None:
    stdout = io.StringIO()
    with contextlib.redirect_stdout(stdout):
      self.assertEqual(self._Run('triage'), 0)
    output = stdout.getvalue()
    self.assertIn('Windows:', output)
    self.assertIn('1 test(s) with some portion expecting permanent `CRASH`',
                  output)
    self.assertIn('1 test(s) with some portion perma-`FAIL`ing, 1 subtests '
                  'total', output)

  def testShowZeroItems(self) -> None:
    stdout = io.StringIO()
    with contextlib.redirect_stdout(stdout):
      self.assertEqual(self._Run('triage', '--on-zero-item', 'show'), 0)
    self.assertIn('0 test(s) with execution reporting permanent `ERROR`',
                  stdout.getvalue())


if __name__ == '__main__':
  unittest.main(verbosity=2)
