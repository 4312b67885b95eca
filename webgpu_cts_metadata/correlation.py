# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Correlation of metadata entries with reported outcomes for the same test."""

from typing import Dict, Iterable, Iterator, Optional, Tuple

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import outcomes
from webgpu_cts_metadata import paths


class UnreconcilableEntryError(RuntimeError):
  """Raised when a correlated entry has neither a metadata nor a report path."""


class Entry:
  """Metadata-declared properties and reported outcomes for one test/subtest.

  Attributes:
    meta_props: The data_types.TestProps found in metadata, or None if the
        test/subtest has no metadata yet.
    reported: A data_types.ReportedOutcomes with every outcome reported for
        the test/subtest.
  """

  def __init__(self, outcome_type: data_types.OutcomeType):
    self.meta_props = None
    self.reported = data_types.ReportedOutcomes(outcome_type)

  def __repr__(self) -> str:
    return 'Entry(meta_props=%r, reported=%r)' % (self.meta_props,
                                                 self.reported)


class TestEntry:
  """An Entry for a test along with Entries for each of its subtests."""

  def __init__(self):
    self.entry = Entry(outcomes.TestOutcome)
    self.subtests = {}

  def GetSubtest(self, name: str) -> Entry:
    subtest = self.subtests.get(name)
    if subtest is None:
      subtest = Entry(outcomes.SubtestOutcome)
      self.subtests[name] = subtest
    return subtest

  def __repr__(self) -> str:
    return 'TestEntry(%r, %r)' % (self.entry, self.subtests)


class CorrelationRecord:
  """The paths a CTS test was seen at, along with its merged TestEntry."""

  def __init__(self):
    self.metadata_path = None
    self.reported_path = None
    self.test_entry = TestEntry()

  def ResolveOutputPath(
      self, diagnostics: diagnostics_module.Diagnostics) -> paths.TestPath:
    """Returns the path that the reconciled test should be written to.

    The reported path wins when both are known and differ, since it reflects
    how the test is run today.
    """
    if (self.metadata_path is not None and self.reported_path is not None
        and self.metadata_path != self.reported_path):
      diagnostics.Info(
          'metadata path for test is different from reported execution; '
          'relocating...\n...metadata: %r\n...reported: %r',
          self.metadata_path, self.reported_path)
      return self.reported_path
    output_path = self.metadata_path or self.reported_path
    if output_path is None:
      raise UnreconcilableEntryError(
          'internal error: CTS path entry created without at least one report '
          'or metadata path specified')
    return output_path


class CorrelationStore:
  """Gathers metadata and reported outcomes keyed by test identity.

  CTS tests are keyed by their CTS query (see paths.TestPath.CtsQueryKey()),
  everything else by its TestPath.
  """

  def __init__(self, diagnostics: diagnostics_module.Diagnostics):
    self._diagnostics = diagnostics
    self._records_by_cts_query = {}
    self._entries_by_test_path = {}
    self._reported_duplicates = set()

  def _LookUp(self, test_path: paths.TestPath
              ) -> Tuple[Optional[CorrelationRecord], TestEntry]:
    cts_query = test_path.CtsQueryKey()
    if cts_query is not None:
      record = self._records_by_cts_query.get(cts_query)
      if record is None:
        record = CorrelationRecord()
        self._records_by_cts_query[cts_query] = record
      return record, record.test_entry

    test_entry = self._entries_by_test_path.get(test_path)
    if test_entry is None:
      test_entry = TestEntry()
      self._entries_by_test_path[test_path] = test_entry
    return None, test_entry

  def _ReportDuplicate(self, test_path: paths.TestPath) -> None:
    identity = test_path.CtsQueryKey() or test_path
    if identity in self._reported_duplicates:
      return
    self._reported_duplicates.add(identity)
    self._diagnostics.Warning(
        'duplicate entry for %r, discarding this and further duplicates',
        test_path)

  def IngestMetadataEntry(
      self,
      test_path: paths.TestPath,
      properties: data_types.TestProps,
      subtests: Optional[Dict[str, data_types.TestProps]] = None) -> None:
    """Installs |properties| as the metadata side of |test_path|'s entry.

    If metadata was already installed for the same identity, the first one
    is kept and a duplicate warning is emitted once per identity.
    """
    record, test_entry = self._LookUp(test_path)
    if record is not None:
      if record.metadata_path is not None:
        self._ReportDuplicate(test_path)
        return
      record.metadata_path = test_path
    if test_entry.entry.meta_props is not None:
      self._ReportDuplicate(test_path)
      return
    test_entry.entry.meta_props = properties

    for subtest_name, subtest_properties in (subtests or {}).items():
      subtest_entry = test_entry.GetSubtest(subtest_name)
      assert subtest_entry.meta_props is None
      subtest_entry.meta_props = subtest_properties

  def IngestReportEntry(
      self,
      test_path: paths.TestPath,
      outcome: outcomes.TestOutcome,
      platform: outcomes.Platform,
      build_profile: outcomes.BuildProfile,
      subtests: Iterable[data_types.SubtestExecutionEntry] = ()) -> None:
    """Accumulates a reported outcome for |test_path| and its subtests.

    If a CTS test is reported at a different path than it was previously, the
    newer path is kept.
    """
    record, test_entry = self._LookUp(test_path)
    if record is not None:
      old_path = record.reported_path
      record.reported_path = test_path
      if old_path is not None and old_path != test_path:
        self._diagnostics.Warning(
            'found test execution entry containing the same CTS test path as '
            'another, discarding previous entries with this and further '
            'dupes; entries:\nolder: %r\nnewer: %r', old_path, test_path)

    test_entry.entry.reported.Accumulate(platform, build_profile, outcome)
    for subtest in subtests:
      test_entry.GetSubtest(subtest.name).reported.Accumulate(
          platform, build_profile, subtest.outcome)

  def Items(self) -> Iterator[Tuple[paths.TestPath, TestEntry]]:
    """Yields (output path, TestEntry) for every identity seen."""
    for record in self._records_by_cts_query.values():
      yield record.ResolveOutputPath(self._diagnostics), record.test_entry
    for test_path, test_entry in self._entries_by_test_path.items():
      yield test_path, test_entry

  def __len__(self) -> int:
    return len(self._records_by_cts_query) + len(self._entries_by_test_path)
