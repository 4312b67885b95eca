# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Methods related to reconciling metadata with reported test outcomes."""

from enum import Enum
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional

from webgpu_cts_metadata import correlation
from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import outcomes
from webgpu_cts_metadata import paths

# A subtest that runs out of time may be recorded as either of these depending
# on how far it got, so they are always expected together.
SUSPICIOUS_SUBTEST_OUTCOMES = frozenset([
    outcomes.SubtestOutcome.TIMEOUT,
    outcomes.SubtestOutcome.NOTRUN,
])


class Policy(str, Enum):
  """How newly reported outcomes are combined with existing expectations."""
  # Existing expectations are discarded in favor of reported outcomes.
  RESET_ALL = 'reset-all'
  # Existing expectations are kept unless a report contradicts them.
  RESET_CONTRADICTORY = 'reset-contradictory'
  # Reported outcomes are added to existing expectations.
  MERGE = 'merge'


class ReconcileResult(NamedTuple):
  updated_files: Dict[str, data_types.MetadataFile]
  removed_files: List[str]
  diagnostics: diagnostics_module.Diagnostics


def Reconcile(existing: Optional[data_types.NormalizedExpectations],
              reported: data_types.ReportedOutcomes,
              policy: Policy) -> data_types.NormalizedExpectations:
  """Combines existing expectations with reported outcomes.

  Every (Platform, BuildProfile) configuration is resolved independently.

  Args:
    existing: The data_types.NormalizedExpectations currently in metadata, or
        None if there are none.
    reported: A data_types.ReportedOutcomes containing observed outcomes.
        Configurations without observations take the default outcome when
        nothing else applies.
    policy: The Policy to resolve each configuration with.

  Returns:
    A collapsed data_types.NormalizedExpectations.
  """
  if policy == Policy.RESET_ALL or existing is None:
    return data_types.NormalizedExpectations.FromExpanded(reported.ToExpanded())

  assert existing.Expand().outcome_type is reported.outcome_type

  if policy == Policy.RESET_CONTRADICTORY:

    def Resolve(meta: data_types.Expectation,
                rep: Optional[data_types.Expectation]) -> data_types.Expectation:
      if rep is not None and not meta.IsSuperset(rep):
        return rep
      return meta
  elif policy == Policy.MERGE:

    def Resolve(meta: data_types.Expectation,
                rep: Optional[data_types.Expectation]) -> data_types.Expectation:
      if rep is None:
        return meta
      return meta | rep
  else:
    raise RuntimeError('Unhandled reconciliation policy %s' % policy)

  return data_types.NormalizedExpectations.FromExpanded(
      data_types.ExpandedExpectations.FromQuery(lambda p, bp: Resolve(
          existing.Get(p, bp), reported.Get(p, bp))))


def TaintSubtestTimeoutsBySuspicion(
    expectation: data_types.Expectation) -> data_types.Expectation:
  """Makes sure TIMEOUT and NOTRUN are either both expected or neither is.

  Many subtests are deterministic when they get to run, but their test as a
  whole regularly exceeds the runner's time limit. Expecting both outcomes as
  soon as one is seen avoids needing many runs to observe every place where a
  timeout can occur.
  """
  if expectation.IsDisjoint(SUSPICIOUS_SUBTEST_OUTCOMES):
    return expectation
  return expectation | SUSPICIOUS_SUBTEST_OUTCOMES


def TaintNormalizedSubtestExpectations(
    expectations: data_types.NormalizedExpectations
) -> data_types.NormalizedExpectations:
  """Applies TaintSubtestTimeoutsBySuspicion() to every configuration."""
  return data_types.NormalizedExpectations.FromExpanded(
      data_types.ExpandedExpectations.FromQuery(
          lambda p, bp: TaintSubtestTimeoutsBySuspicion(expectations.Get(p, bp))
      ))


def ReconcileEntry(entry: correlation.Entry,
                   policy: Policy) -> data_types.TestProps:
  """Returns the TestProps that should replace |entry|'s metadata."""
  meta_props = entry.meta_props or data_types.TestProps()
  return data_types.TestProps(
      expectations=Reconcile(meta_props.expectations, entry.reported, policy),
      is_disabled=meta_props.is_disabled)


class _Reconciler:
  """Carries per-run state for ReconcileAll()."""

  def __init__(self, policy: Policy, browser: paths.Browser,
               diagnostics: diagnostics_module.Diagnostics):
    self._policy = policy
    self._browser = browser
    self._diagnostics = diagnostics
    self._store = correlation.CorrelationStore(diagnostics)
    self._file_properties_by_path = {}
    self._paths_with_errors = set()
    self._using_reports = False
    self._gave_taint_notice = False

  def AddMetadataFiles(
      self, metadata_files: Dict[str, data_types.MetadataFile]) -> None:
    for rel_path, metadata_file in metadata_files.items():
      self._file_properties_by_path[rel_path] = metadata_file.properties
      test_paths = []
      for test_name, test in metadata_file.tests.items():
        try:
          test_paths.append(
              (paths.TestPath.FromMetadataTest(rel_path, test_name), test))
        except paths.PathFormatError as e:
          self._diagnostics.Error('%s', e)
          self._paths_with_errors.add(rel_path)
      # A file with any test that cannot be understood is left untouched.
      if rel_path in self._paths_with_errors:
        self._diagnostics.Warning('leaving metadata file %s unchanged',
                                  rel_path)
        continue
      for test_path, test in test_paths:
        self._store.IngestMetadataEntry(test_path, test.properties,
                                        test.subtests)

  def AddExecutionReports(
      self, execution_reports: Iterable[data_types.ExecutionReport]) -> None:
    for report in execution_reports:
      self._using_reports = True
      for entry in report.entries:
        try:
          test_path = paths.TestPath.FromExecutionReport(
              entry.test_name, self._browser)
        except paths.PathFormatError as e:
          self._diagnostics.Error('%s', e)
          continue
        self._store.IngestReportEntry(test_path, entry.outcome,
                                      report.platform, report.build_profile,
                                      entry.subtests)

  def _TaintSubtest(self, properties: data_types.TestProps) -> None:
    tainted = TaintNormalizedSubtestExpectations(properties.expectations)
    if tainted != properties.expectations and not self._gave_taint_notice:
      self._gave_taint_notice = True
      self._diagnostics.Info(
          'encountered at least one case where taint-by-suspicion is being '
          'applied...')
    properties.expectations = tainted

  def ReconcileTest(self, test_path: paths.TestPath,
                    test_entry: correlation.TestEntry
                    ) -> Optional[data_types.MetadataTest]:
    """Reconciles a single test, returning None if it should be removed."""
    if test_entry.entry.meta_props is None:
      self._diagnostics.Info('new test entry: %r', test_path)

    if test_entry.entry.reported.IsEmpty() and self._using_reports:
      if self._policy == Policy.MERGE:
        self._diagnostics.Warning('no entries found in reports for %r',
                                  test_path)
      else:
        self._diagnostics.Warning(
            'removing metadata after no entries found in reports for %r',
            test_path)
        return None

    properties = ReconcileEntry(test_entry.entry, self._policy)
    subtests = {}
    for subtest_name in sorted(test_entry.subtests):
      subtest_properties = ReconcileEntry(test_entry.subtests[subtest_name],
                                          self._policy)
      self._TaintSubtest(subtest_properties)
      subtests[subtest_name] = subtest_properties
    return data_types.MetadataTest(properties, subtests)

  def GatherFiles(self) -> ReconcileResult:
    logging.info(
        'metadata and reports gathered, now reconciling outcomes...')
    files = {}
    for test_path, test_entry in self._store.Items():
      test = self.ReconcileTest(test_path, test_entry)
      if test is None:
        continue

      rel_path = test_path.RelMetadataPath()
      metadata_file = files.get(rel_path)
      if metadata_file is None:
        properties = self._file_properties_by_path.get(rel_path)
        if properties is None:
          self._diagnostics.Warning('creating new metadata file for `%s`',
                                    rel_path)
          properties = []
        metadata_file = data_types.MetadataFile(list(properties))
        files[rel_path] = metadata_file

      test_name = test_path.TestName()
      if test_name in metadata_file.tests:
        self._diagnostics.Error('internal error: duplicate test path %r',
                                test_path)
        continue
      metadata_file.tests[test_name] = test

    updated_files = {}
    for rel_path in sorted(files):
      if rel_path in self._paths_with_errors:
        continue
      metadata_file = files[rel_path]
      metadata_file.tests = {
          name: metadata_file.tests[name]
          for name in sorted(metadata_file.tests)
      }
      updated_files[rel_path] = metadata_file

    removed_files = []
    for rel_path in sorted(self._file_properties_by_path):
      if rel_path in updated_files or rel_path in self._paths_with_errors:
        continue
      self._diagnostics.Info('removing now-empty metadata file %s', rel_path)
      removed_files.append(rel_path)

    return ReconcileResult(updated_files, removed_files, self._diagnostics)


def ReconcileAll(
    metadata_files: Dict[str, data_types.MetadataFile],
    execution_reports: Iterable[data_types.ExecutionReport],
    policy: Policy,
    browser: paths.Browser = paths.Browser.FIREFOX,
    diagnostics: Optional[diagnostics_module.Diagnostics] = None
) -> ReconcileResult:
  """Reconciles parsed metadata files with execution reports.

  Per-item problems (e.g. a test path that cannot be understood) are recorded
  as errors in the returned diagnostics while every other item is still
  processed.

  Args:
    metadata_files: A dict mapping metadata file paths, relative to the
        checkout root and '/'-separated, to data_types.MetadataFile.
    execution_reports: An iterable of data_types.ExecutionReport. If empty,
        tests are never removed for lack of reported outcomes.
    policy: The Policy to reconcile with.
    browser: The paths.Browser that produced |execution_reports|.
    diagnostics: An optional diagnostics.Diagnostics to record messages in.

  Returns:
    A ReconcileResult. |updated_files| maps relative paths to the new
    contents of every non-empty metadata file, with tests sorted by name.
    |removed_files| lists previously existing files that are now empty.
  """
  if diagnostics is None:
    diagnostics = diagnostics_module.Diagnostics()
  reconciler = _Reconciler(policy, browser, diagnostics)
  logging.info('loading metadata for comparison to reports...')
  reconciler.AddMetadataFiles(metadata_files)
  logging.info(
      'gathering reported test outcomes for reconciliation with metadata...')
  reconciler.AddExecutionReports(execution_reports)
  return reconciler.GatherFiles()
