# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Helper methods for unittests."""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata.outcomes import (BuildProfile, Platform,
                                          SubtestOutcome, TestOutcome)

FX_META_DIR = 'testing/web-platform/mozilla/meta/webgpu'
FX_CTS_META_PATH = FX_META_DIR + '/cts.https.html.ini'
FX_CTS_URL_PREFIX = '/_mozilla/webgpu/cts.https.html'


def TestExpectation(*outcomes: TestOutcome) -> data_types.Expectation:
  return data_types.Expectation.FromOutcomes(TestOutcome, outcomes)


def SubtestExpectation(*outcomes: SubtestOutcome) -> data_types.Expectation:
  return data_types.Expectation.FromOutcomes(SubtestOutcome, outcomes)


def CreateExpanded(default: data_types.Expectation,
                   overrides: Optional[Dict[Tuple[Platform, BuildProfile],
                                            data_types.Expectation]] = None
                   ) -> data_types.ExpandedExpectations:
  """Returns ExpandedExpectations with |default| outside of |overrides|."""
  overrides = overrides or {}
  return data_types.ExpandedExpectations.FromQuery(
      lambda p, bp: overrides.get((p, bp), default))


def CreateReported(
    outcome_type: data_types.OutcomeType,
    observations: Iterable[Tuple[Platform, BuildProfile, Any]]
) -> data_types.ReportedOutcomes:
  reported = data_types.ReportedOutcomes(outcome_type)
  for platform, build_profile, outcome in observations:
    reported.Accumulate(platform, build_profile, outcome)
  return reported


def CtsTestName(query: str) -> str:
  return 'cts.https.html?q=webgpu:%s' % query


def CreateReportJson(os_name: str, debug: bool,
                     results: List[Dict[str, Any]]) -> Dict[str, Any]:
  """Returns the decoded JSON of a wptreport.json file."""
  return {
      'run_info': {
          'os': os_name,
          'debug': debug,
          'processor': 'x86_64',
      },
      'time_start': 1700000000000,
      'results': results,
  }


def CreateReportResult(test_name: str,
                       status: str,
                       subtests: Optional[Iterable[Tuple[str, str]]] = None
                       ) -> Dict[str, Any]:
  return {
      'test': test_name,
      'status': status,
      'message': None,
      'subtests': [{
          'name': name,
          'status': subtest_status,
          'message': None,
      } for name, subtest_status in (subtests or [])],
  }


def CreateExecutionReport(
    platform: Platform, build_profile: BuildProfile,
    entries: Iterable[Tuple[str, TestOutcome, Iterable[Tuple[str,
                                                             SubtestOutcome]]]]
) -> data_types.ExecutionReport:
  return data_types.ExecutionReport(platform, build_profile, [
      data_types.TestExecutionEntry(test_name, outcome, [
          data_types.SubtestExecutionEntry(name, subtest_outcome)
          for name, subtest_outcome in subtests
      ]) for test_name, outcome, subtests in entries
  ])
