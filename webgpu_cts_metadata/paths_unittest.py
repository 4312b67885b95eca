#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import unittest

from webgpu_cts_metadata import paths
from webgpu_cts_metadata import unittest_utils as uu


class FromExecutionReportUnittest(unittest.TestCase):

  def testPrivateFirefoxPath(self) -> None:
    test_path = paths.TestPath.FromExecutionReport(
        '/_mozilla/blarg/cts.https.html?stuff=things', paths.Browser.FIREFOX)
    self.assertEqual(
        test_path,
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'blarg/cts.https.html',
                       '?stuff=things'))

  def testPublicFirefoxPath(self) -> None:
    test_path = paths.TestPath.FromExecutionReport(
        '/webgpu/foo.https.html', paths.Browser.FIREFOX)
    self.assertEqual(
        test_path,
        paths.TestPath(paths.FX_PUBLIC_SCOPE, 'webgpu/foo.https.html'))
    self.assertIsNone(test_path.variant)

  def testServoPath(self) -> None:
    test_path = paths.TestPath.FromExecutionReport(
        '/_webgpu/webgpu/cts.https.html?q=webgpu:api,foo:*',
        paths.Browser.SERVO)
    self.assertEqual(
        test_path,
        paths.TestPath(paths.SERVO_PUBLIC_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:api,foo:*'))

  def testServoRequiresPrefix(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromExecutionReport('/webgpu/cts.https.html',
                                         paths.Browser.SERVO)

  def testVariantTakenFromTrailingSegment(self) -> None:
    """Tests that only a '?' in the last path segment starts the variant."""
    test_path = paths.TestPath.FromExecutionReport(
        '/_mozilla/webgpu/cts.https.html?q=webgpu:a/b?c', paths.Browser.FIREFOX)
    self.assertEqual(test_path.path, 'webgpu/cts.https.html?q=webgpu:a/b')
    self.assertEqual(test_path.variant, '?c')

  def testFirstQuestionMarkInTrailingSegmentStartsVariant(self) -> None:
    test_path = paths.TestPath.FromExecutionReport(
        '/_mozilla/webgpu/cts.https.html?q=webgpu:a?b', paths.Browser.FIREFOX)
    self.assertEqual(test_path.path, 'webgpu/cts.https.html')
    self.assertEqual(test_path.variant, '?q=webgpu:a?b')

  def testBackslashRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromExecutionReport('/_mozilla/webgpu\\cts.https.html',
                                         paths.Browser.FIREFOX)

  def testMissingLeadingSlashRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromExecutionReport('webgpu/cts.https.html',
                                         paths.Browser.FIREFOX)

  def testDirectoryRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromExecutionReport('/_mozilla/webgpu/',
                                         paths.Browser.FIREFOX)
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromExecutionReport('/_mozilla/?q=webgpu:*',
                                         paths.Browser.FIREFOX)


class FromMetadataTestUnittest(unittest.TestCase):

  def testPrivateFirefoxPath(self) -> None:
    test_path = paths.TestPath.FromMetadataTest(
        'testing/web-platform/mozilla/meta/blarg/cts.https.html.ini',
        'cts.https.html?stuff=things')
    self.assertEqual(
        test_path,
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'blarg/cts.https.html',
                       '?stuff=things'))

  def testPublicFirefoxPath(self) -> None:
    test_path = paths.TestPath.FromMetadataTest(
        'testing/web-platform/meta/webgpu/foo.https.html.ini',
        'foo.https.html')
    self.assertEqual(
        test_path,
        paths.TestPath(paths.FX_PUBLIC_SCOPE, 'webgpu/foo.https.html'))

  def testServoPath(self) -> None:
    test_path = paths.TestPath.FromMetadataTest(
        'tests/wpt/webgpu/meta/webgpu/cts.https.html.ini',
        'cts.https.html?q=webgpu:api,foo:*')
    self.assertEqual(test_path.scope, paths.SERVO_PUBLIC_SCOPE)
    self.assertEqual(test_path.path, 'webgpu/cts.https.html')

  def testBackslashesNormalized(self) -> None:
    test_path = paths.TestPath.FromMetadataTest(
        'testing\\web-platform\\mozilla\\meta\\webgpu\\cts.https.html.ini',
        'cts.https.html?q=webgpu:*')
    self.assertEqual(test_path.scope, paths.FX_PRIVATE_SCOPE)
    self.assertEqual(test_path.path, 'webgpu/cts.https.html')

  def testMismatchedBaseNameRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromMetadataTest(uu.FX_CTS_META_PATH,
                                      'other.https.html?q=webgpu:*')

  def testMissingSuffixRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromMetadataTest(
          'testing/web-platform/mozilla/meta/webgpu/cts.https.html',
          'cts.https.html')

  def testUnknownScopeRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromMetadataTest('somewhere/meta/cts.https.html.ini',
                                      'cts.https.html')

  def testMissingMetaDirRejected(self) -> None:
    with self.assertRaises(paths.PathFormatError):
      paths.TestPath.FromMetadataTest(
          'testing/web-platform/mozilla/webgpu/cts.https.html.ini',
          'cts.https.html')


class IdentityUnittest(unittest.TestCase):

  def testReportAndMetadataAgree(self) -> None:
    """Tests that both directions derive the same TestPath."""
    from_report = paths.TestPath.FromExecutionReport(
        '/_mozilla/blarg/cts.https.html?stuff=things', paths.Browser.FIREFOX)
    from_metadata = paths.TestPath.FromMetadataTest(
        'testing/web-platform/mozilla/meta/blarg/cts.https.html.ini',
        'cts.https.html?stuff=things')
    self.assertEqual(from_report, from_metadata)

  def testWrongScopeDisagrees(self) -> None:
    """Tests that public metadata does not match a private report path."""
    from_report = paths.TestPath.FromExecutionReport(
        '/_mozilla/blarg/cts.https.html?stuff=things', paths.Browser.FIREFOX)
    from_metadata = paths.TestPath.FromMetadataTest(
        'testing/web-platform/meta/blarg/cts.https.html.ini',
        'cts.https.html?stuff=things')
    self.assertNotEqual(from_report, from_metadata)

  def testDifferentVariantsDisagree(self) -> None:
    a = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:a:*')
    b = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:b:*')
    self.assertNotEqual(a, b)


class CtsQueryKeyUnittest(unittest.TestCase):

  def testCtsTest(self) -> None:
    test_path = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                               '?q=webgpu:api,foo:*')
    self.assertEqual(test_path.CtsQueryKey(), 'webgpu:api,foo:*')

  def testSameQueryDifferentLocation(self) -> None:
    """Tests that the key ignores where the harness lives."""
    a = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:api,foo:*')
    b = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts/cts.https.html',
                       '?q=webgpu:api,foo:*')
    self.assertNotEqual(a, b)
    self.assertEqual(a.CtsQueryKey(), b.CtsQueryKey())

  def testNonCtsTests(self) -> None:
    self.assertIsNone(
        paths.TestPath(paths.FX_PRIVATE_SCOPE,
                       'webgpu/cts.https.html').CtsQueryKey())
    self.assertIsNone(
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?stuff=things').CtsQueryKey())
    self.assertIsNone(
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/other.https.html',
                       '?q=webgpu:api,foo:*').CtsQueryKey())


class DerivedPathsUnittest(unittest.TestCase):

  def testTestName(self) -> None:
    test_path = paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                               '?q=webgpu:*')
    self.assertEqual(test_path.TestName(), 'cts.https.html?q=webgpu:*')
    self.assertEqual(
        paths.TestPath(paths.FX_PUBLIC_SCOPE, 'a/b.html').TestName(), 'b.html')

  def testRunnerUrlPath(self) -> None:
    self.assertEqual(
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:*').RunnerUrlPath(),
        '_mozilla/webgpu/cts.https.html?q=webgpu:*')
    self.assertEqual(
        paths.TestPath(paths.FX_PUBLIC_SCOPE, 'a/b.html').RunnerUrlPath(),
        'a/b.html')

  def testRelMetadataPath(self) -> None:
    self.assertEqual(
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:*').RelMetadataPath(), uu.FX_CTS_META_PATH)
    self.assertEqual(
        paths.TestPath(paths.SERVO_PUBLIC_SCOPE,
                       'webgpu/cts.https.html').RelMetadataPath(),
        'tests/wpt/webgpu/meta/webgpu/cts.https.html.ini')

  def testRelMetadataPathRoundTrip(self) -> None:
    for test_path in (
        paths.TestPath(paths.FX_PRIVATE_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:*'),
        paths.TestPath(paths.FX_PUBLIC_SCOPE, 'webgpu/a.html'),
        paths.TestPath(paths.SERVO_PUBLIC_SCOPE, 'webgpu/cts.https.html',
                       '?q=webgpu:*'),
    ):
      self.assertEqual(
          paths.TestPath.FromMetadataTest(test_path.RelMetadataPath(),
                                          test_path.TestName()), test_path)

  def testUnknownScope(self) -> None:
    test_path = paths.TestPath(
        paths.TestScope(paths.Browser.SERVO, paths.TestVisibility.PRIVATE),
        'a.html')
    with self.assertRaises(paths.PathFormatError):
      test_path.RelMetadataPath()


if __name__ == '__main__':
  unittest.main(verbosity=2)
