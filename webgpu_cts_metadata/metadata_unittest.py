#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import unittest

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import metadata
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata.outcomes import (BuildProfile, Platform,
                                          SubtestOutcome, TestOutcome)

FAKE_METADATA_FILE_CONTENTS = """\
prefs: [dom.webgpu.enabled:true]
tags: [webgpu]

[cts.https.html?q=webgpu:api,operation,buffers,map:*]
  expected:
    if os == "win" and debug: [OK, TIMEOUT]
    if os == "linux": CRASH
    OK
  [:mapAsync,mapState:*]
    expected: [PASS, FAIL]

[cts.https.html?q=webgpu:api,operation,command_buffer,basic:*]
  disabled: true
  [:b2t2b:]
    expected:
      if debug: FAIL
"""

FORMATTED_METADATA_FILE_CONTENTS = """\
prefs: [dom.webgpu.enabled:true]
tags: [webgpu]

[cts.https.html?q=webgpu:api,operation,buffers,map:*]
  expected:
    if os == "win" and debug: [OK, TIMEOUT]
    if os == "linux": CRASH
    OK
  [:mapAsync,mapState:*]
    expected: [PASS, FAIL]

[cts.https.html?q=webgpu:api,operation,command_buffer,basic:*]
  disabled: true
  [:b2t2b:]
    expected:
      if not debug: PASS
      FAIL
"""

MAP_TEST = uu.CtsTestName('api,operation,buffers,map:*')
BASIC_TEST = uu.CtsTestName('api,operation,command_buffer,basic:*')


class ParseFileUnittest(unittest.TestCase):

  def testParsesFile(self) -> None:
    metadata_file = metadata.ParseFile(FAKE_METADATA_FILE_CONTENTS)
    self.assertEqual(metadata_file.properties,
                     [('prefs', '[dom.webgpu.enabled:true]'),
                      ('tags', '[webgpu]')])
    self.assertEqual(list(metadata_file.tests), [MAP_TEST, BASIC_TEST])

    map_test = metadata_file.tests[MAP_TEST]
    self.assertFalse(map_test.properties.is_disabled)
    self.assertEqual(
        map_test.properties.expectations.Expand(),
        uu.CreateExpanded(
            uu.TestExpectation(TestOutcome.OK), {
                (Platform.WINDOWS, BuildProfile.DEBUG):
                uu.TestExpectation(TestOutcome.OK, TestOutcome.TIMEOUT),
                (Platform.LINUX, BuildProfile.DEBUG):
                uu.TestExpectation(TestOutcome.CRASH),
                (Platform.LINUX, BuildProfile.OPTIMIZED):
                uu.TestExpectation(TestOutcome.CRASH),
            }))
    self.assertEqual(
        map_test.subtests[':mapAsync,mapState:*'].expectations,
        data_types.NormalizedExpectations.Uniform(
            uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL)))

    basic_test = metadata_file.tests[BASIC_TEST]
    self.assertTrue(basic_test.properties.is_disabled)
    self.assertIsNone(basic_test.properties.expectations)
    self.assertEqual(
        basic_test.subtests[':b2t2b:'].expectations,
        data_types.NormalizedExpectations.Uniform(
            data_types.ProfileExpectations.ByBuildProfile({
                BuildProfile.DEBUG:
                uu.SubtestExpectation(SubtestOutcome.FAIL),
                BuildProfile.OPTIMIZED:
                uu.SubtestExpectation(SubtestOutcome.PASS),
            })))

  def testFirstMatchingConditionWins(self) -> None:
    metadata_file = metadata.ParseFile("""\
[foo.html]
  expected:
    if os == "mac": CRASH
    if os == "mac" and debug: ERROR
    if not debug: TIMEOUT
""")
    expectations = metadata_file.tests['foo.html'].properties.expectations
    self.assertEqual(expectations.Get(Platform.MAC_OS, BuildProfile.DEBUG),
                     uu.TestExpectation(TestOutcome.CRASH))
    self.assertEqual(
        expectations.Get(Platform.WINDOWS, BuildProfile.OPTIMIZED),
        uu.TestExpectation(TestOutcome.TIMEOUT))
    self.assertEqual(expectations.Get(Platform.WINDOWS, BuildProfile.DEBUG),
                     uu.TestExpectation(TestOutcome.OK))

  def testEscapedSectionNames(self) -> None:
    metadata_file = metadata.ParseFile('[foo.html]\n  [a[1\\]]\n')
    self.assertEqual(list(metadata_file.tests['foo.html'].subtests),
                     ['a[1]'])

  def testCommentsAndBlankLinesIgnored(self) -> None:
    metadata_file = metadata.ParseFile(
        '# A comment.\n\n[foo.html]\n\n  # Another.\n  expected: ERROR\n')
    self.assertEqual(
        metadata_file.tests['foo.html'].properties.expectations,
        data_types.NormalizedExpectations.Uniform(
            uu.TestExpectation(TestOutcome.ERROR)))

  def testMultilineFileProperty(self) -> None:
    metadata_file = metadata.ParseFile(
        'lsan-allowed:\n  if os == "linux": [foo]\n[foo.html]\n')
    self.assertEqual(metadata_file.properties,
                     [('lsan-allowed', '\n  if os == "linux": [foo]')])

  def testErrors(self) -> None:
    """Tests that malformed or unsupported input is rejected."""
    bad_contents = [
        # Wrong outcome type for a test.
        '[foo.html]\n  expected: PASS\n',
        # Wrong outcome type for a subtest.
        '[foo.html]\n  [bar]\n    expected: OK\n',
        # Unknown property.
        '[foo.html]\n  bug: 1234\n',
        # Duplicate property.
        '[foo.html]\n  expected: OK\n  expected: CRASH\n',
        # Duplicate test.
        '[foo.html]\n[foo.html]\n',
        # Duplicate subtest.
        '[foo.html]\n  [bar]\n  [bar]\n',
        # Odd indentation.
        '[foo.html]\n   expected: OK\n',
        # Unknown os.
        '[foo.html]\n  expected:\n    if os == "beos": OK\n',
        # Unsupported condition.
        '[foo.html]\n  expected:\n    if version == "10": OK\n',
        # Unreachable branch.
        '[foo.html]\n  expected:\n    OK\n    if debug: CRASH\n',
        # Conditional disabled.
        '[foo.html]\n  disabled:\n    if debug: true\n',
        # Empty expectation.
        '[foo.html]\n  expected: []\n',
        # Missing value.
        '[foo.html]\n  expected:\n',
        # Properties after tests.
        '[foo.html]\nprefs: []\n',
        # Nested too deeply.
        '[foo.html]\n  [bar]\n    [baz]\n',
        # Test properties after a subtest.
        '[foo.html]\n  [bar]\n  expected: OK\n',
    ]
    for contents in bad_contents:
      with self.assertRaises(metadata.MetadataParseError, msg=contents):
        metadata.ParseFile(contents, 'foo.html.ini')

  def testErrorLocation(self) -> None:
    with self.assertRaises(metadata.MetadataParseError) as cm:
      metadata.ParseFile('[foo.html]\n  expected: BOGUS\n', 'foo.html.ini')
    self.assertEqual(cm.exception.path, 'foo.html.ini')
    self.assertEqual(cm.exception.line_number, 2)
    self.assertIn('foo.html.ini:2', str(cm.exception))

  def testDisabledValues(self) -> None:
    metadata_file = metadata.ParseFile('[a.html]\n  disabled: false\n'
                                       '[b.html]\n  disabled: bug 1234\n')
    self.assertFalse(metadata_file.tests['a.html'].properties.is_disabled)
    self.assertTrue(metadata_file.tests['b.html'].properties.is_disabled)


class FormatExpectedUnittest(unittest.TestCase):

  def testDefaultOmitted(self) -> None:
    self.assertEqual(
        metadata.FormatExpected(
            data_types.NormalizedExpectations.Default(TestOutcome), 1), [])

  def testUniform(self) -> None:
    self.assertEqual(
        metadata.FormatExpected(
            data_types.NormalizedExpectations.Uniform(
                uu.SubtestExpectation(SubtestOutcome.FAIL)), 2),
        ['    expected: FAIL'])

  def testMostCommonValueIsFallback(self) -> None:
    expectations = data_types.NormalizedExpectations.FromExpanded(
        uu.CreateExpanded(
            uu.SubtestExpectation(SubtestOutcome.FAIL), {
                (Platform.MAC_OS, BuildProfile.DEBUG):
                uu.SubtestExpectation(SubtestOutcome.PASS),
                (Platform.MAC_OS, BuildProfile.OPTIMIZED):
                uu.SubtestExpectation(SubtestOutcome.PASS),
            }))
    self.assertEqual(metadata.FormatExpected(expectations, 1), [
        '  expected:',
        '    if os == "mac": PASS',
        '    FAIL',
    ])


class FormatFileUnittest(unittest.TestCase):

  def testNormalizes(self) -> None:
    self.assertEqual(
        metadata.FormatFile(metadata.ParseFile(FAKE_METADATA_FILE_CONTENTS)),
        FORMATTED_METADATA_FILE_CONTENTS)

  def testFormattedIsStable(self) -> None:
    """Tests that formatted output parses back to the same file."""
    parsed = metadata.ParseFile(FORMATTED_METADATA_FILE_CONTENTS)
    self.assertEqual(metadata.FormatFile(parsed),
                     FORMATTED_METADATA_FILE_CONTENTS)
    self.assertEqual(parsed,
                     metadata.ParseFile(FAKE_METADATA_FILE_CONTENTS))

  def testSortsTestsAndSubtests(self) -> None:
    metadata_file = data_types.MetadataFile(
        tests={
            'b.html':
            data_types.MetadataTest(subtests={
                'z': data_types.TestProps(),
                'y': data_types.TestProps(),
            }),
            'a.html':
            data_types.MetadataTest(),
        })
    self.assertEqual(metadata.FormatFile(metadata_file),
                     '[a.html]\n\n[b.html]\n  [y]\n  [z]\n')

  def testEscapesSectionNames(self) -> None:
    metadata_file = data_types.MetadataFile(
        tests={
            'foo.html':
            data_types.MetadataTest(subtests={'a[1]': data_types.TestProps()})
        })
    formatted = metadata.FormatFile(metadata_file)
    self.assertEqual(formatted, '[foo.html]\n  [a[1\\]]\n')
    self.assertEqual(metadata.ParseFile(formatted), metadata_file)

  def testMultilineFileProperty(self) -> None:
    contents = 'lsan-allowed:\n  if os == "linux": [foo]\n\n[foo.html]\n'
    self.assertEqual(metadata.FormatFile(metadata.ParseFile(contents)),
                     contents)


class ParseFilesUnittest(unittest.TestCase):

  def testCollectsErrors(self) -> None:
    files, errors = metadata.ParseFiles({
        'good.html.ini': '[good.html]\n',
        'bad.html.ini': '[bad.html]\n  expected: NOPE\n',
        'worse.html.ini': '  [worse.html]\n',
    })
    self.assertEqual(list(files), ['good.html.ini'])
    self.assertEqual(sorted(e.path for e in errors),
                     ['bad.html.ini', 'worse.html.ini'])


if __name__ == '__main__':
  unittest.main(verbosity=2)
