# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Summarizes expectations in metadata to help prioritize investigations."""

import logging
from typing import Dict, Iterator, List, NamedTuple, Optional

import pandas

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import outcomes
from webgpu_cts_metadata import paths

COLUMNS = ['test', 'subtest', 'platform', 'category', 'is_permanent']

RUNNER_ERROR = 'runner_error'
DISABLED_OR_SKIP = 'disabled_or_skip'
CRASH = 'crash'
FAILURE = 'failure'
TIMEOUT = 'timeout'

TEST_OUTCOME_CATEGORIES = {
    outcomes.TestOutcome.CRASH: CRASH,
    outcomes.TestOutcome.ERROR: RUNNER_ERROR,
    outcomes.TestOutcome.SKIP: DISABLED_OR_SKIP,
    # Tests that time out should have TIMEOUT/NOTRUN subtests, which are
    # counted instead.
}
SUBTEST_OUTCOME_CATEGORIES = {
    outcomes.SubtestOutcome.FAIL: FAILURE,
    outcomes.SubtestOutcome.TIMEOUT: TIMEOUT,
    outcomes.SubtestOutcome.NOTRUN: TIMEOUT,
    outcomes.SubtestOutcome.CRASH: CRASH,
}

PLATFORM_DISPLAY_NAMES = {
    outcomes.Platform.WINDOWS: 'Windows',
    outcomes.Platform.LINUX: 'Linux',
    outcomes.Platform.MAC_OS: 'MacOs',
}


class Counts(NamedTuple):
  tests: int
  subtests: int


def _ExpectationRows(test_name: str, subtest_name: str,
                     properties: data_types.TestProps,
                     categories: dict) -> Iterator[list]:
  if properties.is_disabled:
    for platform in outcomes.Platform:
      yield [test_name, subtest_name, platform.value, DISABLED_OR_SKIP, True]
  if properties.expectations is None:
    return
  for (platform, _), expectation in properties.expectations.Expand().Items():
    for outcome in expectation:
      category = categories.get(outcome)
      if category is None:
        continue
      yield [
          test_name, subtest_name, platform.value, category,
          expectation.IsPermanent()
      ]


def BuildExpectationFrame(metadata_files: Dict[str, data_types.MetadataFile]
                          ) -> pandas.DataFrame:
  """Flattens expectations into one row per notable expected outcome.

  Args:
    metadata_files: A dict mapping relative metadata file paths to
        data_types.MetadataFile.

  Returns:
    A pandas.DataFrame with COLUMNS as its columns. Test-level rows have an
    empty |subtest|.

  Raises:
    paths.PathFormatError: A test's path could not be derived.
  """
  rows = []
  for rel_path, metadata_file in metadata_files.items():
    for test_name, test in metadata_file.tests.items():
      url_path = paths.TestPath.FromMetadataTest(rel_path,
                                                 test_name).RunnerUrlPath()
      rows.extend(
          _ExpectationRows(url_path, '', test.properties,
                           TEST_OUTCOME_CATEGORIES))
      for subtest_name, subtest_properties in test.subtests.items():
        rows.extend(
            _ExpectationRows(url_path, subtest_name, subtest_properties,
                             SUBTEST_OUTCOME_CATEGORIES))
  return pandas.DataFrame(rows, columns=COLUMNS)


class Analysis:
  """Per-platform counts of tests and subtests with notable expectations."""

  def __init__(self, frame: pandas.DataFrame):
    group_columns = ['platform', 'category', 'is_permanent']
    self._test_counts = frame.drop_duplicates(
        group_columns + ['test']).groupby(group_columns).size()
    subtest_frame = frame[frame['subtest'] != '']
    self._subtest_counts = subtest_frame.drop_duplicates(
        group_columns + ['test', 'subtest']).groupby(group_columns).size()
    self._frame = frame

  def GetCounts(self, platform: outcomes.Platform, category: str,
                is_permanent: bool) -> Counts:
    key = (platform.value, category, is_permanent)

    def Lookup(counts: pandas.Series) -> int:
      return int(counts[key]) if key in counts.index else 0

    return Counts(Lookup(self._test_counts), Lookup(self._subtest_counts))

  def GetTests(self, platform: outcomes.Platform, category: str,
               is_permanent: bool) -> List[str]:
    frame = self._frame
    selected = frame[(frame['platform'] == platform.value)
                     & (frame['category'] == category)
                     & (frame['is_permanent'] == is_permanent)]
    return sorted(selected['test'].unique())


def Analyze(metadata_files: Dict[str, data_types.MetadataFile]) -> Analysis:
  return Analysis(BuildExpectationFrame(metadata_files))


def _FormatPlatform(analysis: Analysis, platform: outcomes.Platform,
                    show_zero_count_items: bool) -> str:

  def Item(count: int, text: str) -> Optional[str]:
    if show_zero_count_items or count > 0:
      return text
    return None

  def Get(category: str, is_permanent: bool) -> Counts:
    return analysis.GetCounts(platform, category, is_permanent)

  perma_errors = Get(RUNNER_ERROR, True)
  intermittent_errors = Get(RUNNER_ERROR, False)
  disabled = Get(DISABLED_OR_SKIP, True)
  intermittent_disabled = Get(DISABLED_OR_SKIP, False)
  perma_crashes = Get(CRASH, True)
  intermittent_crashes = Get(CRASH, False)
  perma_failures = Get(FAILURE, True)
  intermittent_failures = Get(FAILURE, False)
  perma_timeouts = Get(TIMEOUT, True)
  intermittent_timeouts = Get(TIMEOUT, False)

  if intermittent_disabled.tests:
    logging.warning(
        'found %d intermittent `SKIP` outcomes, which are not understood yet; '
        'the tests: %s', intermittent_disabled.tests,
        analysis.GetTests(platform, DISABLED_OR_SKIP, False))

  sections = [
      ('HIGH', [
          Item(
              perma_errors.tests,
              '%d test(s) with execution reporting permanent `ERROR`' %
              perma_errors.tests),
          Item(
              disabled.tests,
              '%d test(s) with some portion marked as `disabled`' %
              disabled.tests),
          Item(
              perma_crashes.tests,
              '%d test(s) with some portion expecting permanent `CRASH`' %
              perma_crashes.tests),
      ]),
      ('MEDIUM', [
          Item(
              perma_failures.tests + perma_failures.subtests,
              '%d test(s) with some portion perma-`FAIL`ing, %d subtests '
              'total' % perma_failures),
          Item(
              perma_timeouts.tests,
              '%d test(s) with some portion returning permanent '
              '`TIMEOUT`/`NOTRUN`, %d subtests total' % perma_timeouts),
          Item(
              intermittent_crashes.tests,
              '%d test(s) with some portion expecting intermittent `CRASH`' %
              intermittent_crashes.tests),
          Item(
              intermittent_errors.tests,
              '%d test(s) with execution reporting intermittent `ERROR`' %
              intermittent_errors.tests),
      ]),
      ('LOW', [
          Item(
              intermittent_timeouts.tests,
              '%d test(s) with some portion intermittently returning '
              '`TIMEOUT`/`NOTRUN`, %d subtest(s) total' %
              intermittent_timeouts),
          Item(
              intermittent_failures.tests + intermittent_failures.subtests,
              '%d test(s) with some portion intermittently `FAIL`ing, %d '
              'subtests total' % intermittent_failures),
      ]),
  ]

  text = '%s:' % PLATFORM_DISPLAY_NAMES[platform]
  for priority, items in sections:
    items = [i for i in items if i is not None]
    if not items:
      continue
    text += '\n  %s PRIORITY:' % priority
    for i in items:
      text += '\n    %s' % i
  return text


def FormatReport(analysis: Analysis, show_zero_count_items: bool) -> str:
  """Returns a human-readable triage report for every platform."""
  return '\n'.join(
      _FormatPlatform(analysis, platform, show_zero_count_items)
      for platform in outcomes.Platform)
