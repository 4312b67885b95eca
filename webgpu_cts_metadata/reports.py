# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Methods related to reading wptreport.json execution reports."""

from concurrent.futures import ThreadPoolExecutor, as_completed
import json
import logging
import os
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import outcomes

PLATFORMS_BY_RUN_INFO_OS = {
    'win': outcomes.Platform.WINDOWS,
    'linux': outcomes.Platform.LINUX,
    'mac': outcomes.Platform.MAC_OS,
}


class ReportDecodeError(ValueError):
  """Raised when an execution report does not have the expected shape."""


class DecodedReport(NamedTuple):
  path: str
  report: data_types.ExecutionReport
  # Advisory messages produced while decoding, for the caller to record.
  warnings: List[str]


def _GetField(obj: Dict[str, Any], key: str, expected_type: type,
              context: str) -> Any:
  if not isinstance(obj, dict) or key not in obj:
    raise ReportDecodeError('missing `%s` field in %s' % (key, context))
  value = obj[key]
  if not isinstance(value, expected_type):
    raise ReportDecodeError('`%s` field in %s should be a %s, got %r' %
                            (key, context, expected_type.__name__, value))
  return value


def DecodeRunInfo(run_info: Dict[str, Any]
                  ) -> Tuple[outcomes.Platform, outcomes.BuildProfile]:
  os_name = _GetField(run_info, 'os', str, 'run_info')
  platform = PLATFORMS_BY_RUN_INFO_OS.get(os_name)
  if platform is None:
    raise ReportDecodeError('unrecognized `os` %r in run_info' % os_name)
  if _GetField(run_info, 'debug', bool, 'run_info'):
    build_profile = outcomes.BuildProfile.DEBUG
  else:
    build_profile = outcomes.BuildProfile.OPTIMIZED
  return platform, build_profile


def DecodeReport(contents: Dict[str, Any]
                 ) -> Tuple[data_types.ExecutionReport, List[str]]:
  """Decodes a parsed wptreport.json document.

  Args:
    contents: The JSON-decoded contents of a report.

  Returns:
    A tuple (report, warnings). |report| is a data_types.ExecutionReport and
    |warnings| is a list of advisory messages about the report.

  Raises:
    ReportDecodeError: |contents| is not a valid report.
  """
  warnings = []
  platform, build_profile = DecodeRunInfo(
      _GetField(contents, 'run_info', dict, 'report'))

  entries = []
  for result in _GetField(contents, 'results', list, 'report'):
    test_name = _GetField(result, 'test', str, 'result')
    context = 'result for %r' % test_name
    status = _GetField(result, 'status', str, context)
    outcome = outcomes.ParseOutcome(outcomes.TestOutcome, status)
    if outcome is None:
      # The job running this test may have timed out before it could report
      # a status.
      if status:
        warnings.append('expected an empty `status` field for %r, but found '
                        'the %r status' % (test_name, status))
      outcome = outcomes.TestOutcome.TIMEOUT

    subtests = []
    subtest_results = []
    if 'subtests' in result:
      subtest_results = _GetField(result, 'subtests', list, context)
    for subtest in subtest_results:
      subtest_name = _GetField(subtest, 'name', str, context)
      subtest_status = _GetField(subtest, 'status', str, context)
      subtest_outcome = outcomes.ParseOutcome(outcomes.SubtestOutcome,
                                              subtest_status)
      if subtest_outcome is None:
        raise ReportDecodeError('unrecognized status %r for subtest %r of %r' %
                                (subtest_status, subtest_name, test_name))
      subtests.append(
          data_types.SubtestExecutionEntry(subtest_name, subtest_outcome))
    entries.append(data_types.TestExecutionEntry(test_name, outcome, subtests))

  return data_types.ExecutionReport(platform, build_profile, entries), warnings


def ReadReport(path: str) -> DecodedReport:
  """Reads and decodes the report at |path|.

  Raises:
    OSError: The file could not be read.
    ValueError: The file is not a valid report.
  """
  logging.debug('reading from %s...', path)
  with open(path, encoding='utf-8') as infile:
    contents = json.load(infile)
  report, warnings = DecodeReport(contents)
  return DecodedReport(path, report, warnings)


def LoadReports(report_paths: Iterable[str],
                diagnostics: diagnostics_module.Diagnostics,
                num_workers: Optional[int] = None
                ) -> Tuple[List[data_types.ExecutionReport], bool]:
  """Reads reports in parallel.

  Each file is read and decoded by its own task. Results are collected in
  completion order, which is fine since accumulating outcomes is order
  independent. A failing file does not stop the others; every failure is
  recorded in |diagnostics|.

  Args:
    report_paths: Paths to wptreport.json files.
    diagnostics: A diagnostics.Diagnostics to record problems in.
    num_workers: The number of threads to use. Defaults to the number of
        CPUs.

  Returns:
    A tuple (reports, had_errors). |reports| is a list of
    data_types.ExecutionReport in no particular order. |had_errors| is True
    if any report could not be read.
  """
  report_paths = list(report_paths)
  num_workers = num_workers or os.cpu_count() or 1
  reports = []
  had_errors = False
  if not report_paths:
    return reports, had_errors

  with ThreadPoolExecutor(max_workers=num_workers) as executor:
    futures = {executor.submit(ReadReport, p): p for p in report_paths}
    for future in as_completed(futures):
      path = futures[future]
      try:
        decoded = future.result()
      except (OSError, ValueError) as e:
        had_errors = True
        diagnostics.Error('failed to read WPT execution report from %s: %s',
                          path, e)
        continue
      for warning in decoded.warnings:
        diagnostics.Warning('%s', warning)
      reports.append(decoded.report)
  return reports, had_errors
