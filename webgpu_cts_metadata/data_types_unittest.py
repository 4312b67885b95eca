#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import itertools
import unittest

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import unittest_utils as uu
from webgpu_cts_metadata.outcomes import (BuildProfile, Platform,
                                          SubtestOutcome, TestOutcome)


def _AllSubtestExpectations():
  """Yields every possible subtest Expectation."""
  members = list(SubtestOutcome)
  for size in range(1, len(members) + 1):
    for combination in itertools.combinations(members, size):
      yield uu.SubtestExpectation(*combination)


class ExpectationUnittest(unittest.TestCase):

  def testEmptyRejected(self) -> None:
    """Tests that an Expectation can never be empty."""
    with self.assertRaises(data_types.EmptyExpectationError):
      data_types.Expectation.FromOutcomes(SubtestOutcome, [])
    with self.assertRaises(data_types.EmptyExpectationError):
      data_types.Expectation(TestOutcome, 0)

  def testPermanence(self) -> None:
    permanent = uu.SubtestExpectation(SubtestOutcome.FAIL)
    self.assertTrue(permanent.IsPermanent())
    self.assertEqual(permanent.AsPermanent(), SubtestOutcome.FAIL)
    intermittent = uu.SubtestExpectation(SubtestOutcome.PASS,
                                         SubtestOutcome.FAIL)
    self.assertFalse(intermittent.IsPermanent())
    self.assertIsNone(intermittent.AsPermanent())

  def testDefault(self) -> None:
    self.assertEqual(data_types.Expectation.Default(TestOutcome),
                     uu.TestExpectation(TestOutcome.OK))
    self.assertEqual(data_types.Expectation.Default(SubtestOutcome),
                     uu.SubtestExpectation(SubtestOutcome.PASS))

  def testIterationOrder(self) -> None:
    """Tests that members are iterated in definition order."""
    e = uu.SubtestExpectation(SubtestOutcome.CRASH, SubtestOutcome.PASS,
                              SubtestOutcome.NOTRUN)
    self.assertEqual(
        list(e),
        [SubtestOutcome.PASS, SubtestOutcome.NOTRUN, SubtestOutcome.CRASH])
    self.assertEqual(len(e), 3)

  def testUnion(self) -> None:
    e = uu.SubtestExpectation(SubtestOutcome.FAIL)
    self.assertEqual(e | SubtestOutcome.PASS,
                     uu.SubtestExpectation(SubtestOutcome.PASS,
                                           SubtestOutcome.FAIL))
    self.assertEqual(
        e.Union([SubtestOutcome.TIMEOUT, SubtestOutcome.NOTRUN]),
        uu.SubtestExpectation(SubtestOutcome.FAIL, SubtestOutcome.TIMEOUT,
                              SubtestOutcome.NOTRUN))
    # The input is left untouched.
    self.assertEqual(e, uu.SubtestExpectation(SubtestOutcome.FAIL))

  def testUnionMonotonicity(self) -> None:
    """Tests that a union is a superset of both of its operands."""
    all_expectations = list(_AllSubtestExpectations())
    for a in all_expectations:
      for b in all_expectations:
        union = a | b
        self.assertTrue(union.IsSuperset(a))
        self.assertTrue(union.IsSuperset(b))

  def testIsSuperset(self) -> None:
    big = uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL)
    small = uu.SubtestExpectation(SubtestOutcome.FAIL)
    self.assertTrue(big.IsSuperset(small))
    self.assertTrue(big.IsSuperset(big))
    self.assertFalse(small.IsSuperset(big))

  def testIsDisjoint(self) -> None:
    e = uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL)
    self.assertTrue(
        e.IsDisjoint([SubtestOutcome.TIMEOUT, SubtestOutcome.NOTRUN]))
    self.assertFalse(e.IsDisjoint([SubtestOutcome.FAIL]))

  def testContains(self) -> None:
    e = uu.TestExpectation(TestOutcome.OK, TestOutcome.TIMEOUT)
    self.assertIn(TestOutcome.TIMEOUT, e)
    self.assertNotIn(TestOutcome.CRASH, e)
    self.assertNotIn(SubtestOutcome.TIMEOUT, e)

  def testEqualityAndHashing(self) -> None:
    """Tests that equal sets are equal regardless of construction order."""
    a = uu.SubtestExpectation(SubtestOutcome.FAIL, SubtestOutcome.PASS)
    b = uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL)
    self.assertEqual(a, b)
    self.assertEqual(hash(a), hash(b))
    self.assertEqual(len({a, b}), 1)

  def testDifferentOutcomeTypesNotEqual(self) -> None:
    self.assertNotEqual(uu.TestExpectation(TestOutcome.CRASH),
                        uu.SubtestExpectation(SubtestOutcome.CRASH))

  def testStr(self) -> None:
    self.assertEqual(str(uu.SubtestExpectation(SubtestOutcome.FAIL)), 'FAIL')
    self.assertEqual(
        str(uu.TestExpectation(TestOutcome.TIMEOUT, TestOutcome.OK)),
        '[OK, TIMEOUT]')


class ExpandedExpectationsUnittest(unittest.TestCase):

  def testFromQueryIsDense(self) -> None:
    """Tests that every configuration is populated."""
    expanded = data_types.ExpandedExpectations.FromQuery(
        lambda p, bp: uu.TestExpectation(TestOutcome.CRASH)
        if p == Platform.LINUX else uu.TestExpectation(TestOutcome.OK))
    items = list(expanded.Items())
    self.assertEqual(len(items), 6)
    self.assertEqual(expanded.Get(Platform.LINUX, BuildProfile.DEBUG),
                     uu.TestExpectation(TestOutcome.CRASH))
    self.assertEqual(expanded[(Platform.MAC_OS, BuildProfile.OPTIMIZED)],
                     uu.TestExpectation(TestOutcome.OK))
    self.assertIs(expanded.outcome_type, TestOutcome)

  def testForPlatform(self) -> None:
    expanded = uu.CreateExpanded(
        uu.SubtestExpectation(SubtestOutcome.PASS), {
            (Platform.WINDOWS, BuildProfile.DEBUG):
            uu.SubtestExpectation(SubtestOutcome.FAIL),
        })
    self.assertEqual(
        expanded.ForPlatform(Platform.WINDOWS), {
            BuildProfile.DEBUG: uu.SubtestExpectation(SubtestOutcome.FAIL),
            BuildProfile.OPTIMIZED: uu.SubtestExpectation(SubtestOutcome.PASS),
        })


class NormalizedExpectationsUnittest(unittest.TestCase):

  def testCollapseFullyUniform(self) -> None:
    """Tests that identical cells collapse to a single scalar value."""
    e = uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL)
    normalized = data_types.NormalizedExpectations.FromExpanded(
        data_types.ExpandedExpectations.Uniform(e))
    self.assertEqual(normalized, data_types.NormalizedExpectations.Uniform(e))
    self.assertTrue(normalized.IsUniform())
    self.assertTrue(normalized.uniform.IsUniform())
    self.assertEqual(normalized.Size(), 1)

  def testCollapsePlatformUniform(self) -> None:
    """Tests per-platform values with no build profile nesting."""
    fail = uu.SubtestExpectation(SubtestOutcome.FAIL)
    passing = uu.SubtestExpectation(SubtestOutcome.PASS)
    expanded = data_types.ExpandedExpectations.FromQuery(
        lambda p, bp: fail if p == Platform.MAC_OS else passing)
    normalized = data_types.NormalizedExpectations.FromExpanded(expanded)
    self.assertEqual(
        normalized,
        data_types.NormalizedExpectations.ByPlatform({
            Platform.WINDOWS:
            data_types.ProfileExpectations.Uniform(passing),
            Platform.LINUX:
            data_types.ProfileExpectations.Uniform(passing),
            Platform.MAC_OS:
            data_types.ProfileExpectations.Uniform(fail),
        }))
    for profile_expectations in normalized.by_platform.values():
      self.assertTrue(profile_expectations.IsUniform())
    self.assertEqual(normalized.Size(), 3)

  def testCollapseBuildProfileUniform(self) -> None:
    """Tests that a profile split shared by all platforms is kept once."""
    crash = uu.TestExpectation(TestOutcome.CRASH)
    ok = uu.TestExpectation(TestOutcome.OK)
    expanded = data_types.ExpandedExpectations.FromQuery(
        lambda p, bp: crash if bp == BuildProfile.DEBUG else ok)
    normalized = data_types.NormalizedExpectations.FromExpanded(expanded)
    self.assertEqual(
        normalized,
        data_types.NormalizedExpectations.Uniform(
            data_types.ProfileExpectations.ByBuildProfile({
                BuildProfile.DEBUG: crash,
                BuildProfile.OPTIMIZED: ok,
            })))
    self.assertEqual(normalized.Size(), 2)

  def testCollapseMixed(self) -> None:
    """Tests that platforms are collapsed independently of each other."""
    crash = uu.TestExpectation(TestOutcome.CRASH)
    ok = uu.TestExpectation(TestOutcome.OK)
    expanded = uu.CreateExpanded(ok, {
        (Platform.LINUX, BuildProfile.DEBUG): crash,
    })
    normalized = data_types.NormalizedExpectations.FromExpanded(expanded)
    self.assertIsNone(normalized.uniform)
    self.assertTrue(normalized.by_platform[Platform.WINDOWS].IsUniform())
    self.assertFalse(normalized.by_platform[Platform.LINUX].IsUniform())
    self.assertTrue(normalized.by_platform[Platform.MAC_OS].IsUniform())
    self.assertEqual(normalized.Size(), 4)

  def testRoundTrip(self) -> None:
    """Tests that expanding a collapsed table gives back the same table."""
    choices = [
        uu.SubtestExpectation(SubtestOutcome.PASS),
        uu.SubtestExpectation(SubtestOutcome.FAIL),
        uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL),
    ]
    configs = [(p, bp) for p in Platform for bp in BuildProfile]
    # Every assignment of the choices to the first three cells, with the rest
    # following a fixed pattern, covers each collapse tier.
    for assignment in itertools.product(choices, repeat=3):
      overrides = dict(zip(configs, assignment))
      for index, config in enumerate(configs[3:]):
        overrides[config] = choices[index % 2]
      expanded = uu.CreateExpanded(choices[0], overrides)
      normalized = data_types.NormalizedExpectations.FromExpanded(expanded)
      self.assertEqual(normalized.Expand(), expanded)
      self.assertLessEqual(normalized.Size(), len(configs))

  def testDefault(self) -> None:
    normalized = data_types.NormalizedExpectations.Default(TestOutcome)
    self.assertTrue(normalized.IsDefault())
    self.assertEqual(normalized.Get(Platform.MAC_OS, BuildProfile.DEBUG),
                     uu.TestExpectation(TestOutcome.OK))
    self.assertFalse(
        data_types.NormalizedExpectations.Uniform(
            uu.TestExpectation(TestOutcome.CRASH)).IsDefault())

  def testUniformAndByPlatformExclusive(self) -> None:
    with self.assertRaises(AssertionError):
      data_types.NormalizedExpectations()


class ReportedOutcomesUnittest(unittest.TestCase):

  def testAccumulateUnions(self) -> None:
    reported = uu.CreateReported(SubtestOutcome, [
        (Platform.LINUX, BuildProfile.DEBUG, SubtestOutcome.PASS),
        (Platform.LINUX, BuildProfile.DEBUG, SubtestOutcome.FAIL),
        (Platform.LINUX, BuildProfile.DEBUG, SubtestOutcome.PASS),
    ])
    self.assertEqual(
        reported.Get(Platform.LINUX, BuildProfile.DEBUG),
        uu.SubtestExpectation(SubtestOutcome.PASS, SubtestOutcome.FAIL))
    self.assertIsNone(reported.Get(Platform.LINUX, BuildProfile.OPTIMIZED))
    self.assertFalse(reported.IsEmpty())

  def testEmpty(self) -> None:
    reported = data_types.ReportedOutcomes(TestOutcome)
    self.assertTrue(reported.IsEmpty())
    self.assertEqual(
        reported.ToExpanded(),
        data_types.ExpandedExpectations.Uniform(
            uu.TestExpectation(TestOutcome.OK)))

  def testToExpandedDefaultsUnobservedCells(self) -> None:
    reported = uu.CreateReported(TestOutcome, [
        (Platform.WINDOWS, BuildProfile.OPTIMIZED, TestOutcome.TIMEOUT),
    ])
    self.assertEqual(
        reported.ToExpanded(),
        uu.CreateExpanded(
            uu.TestExpectation(TestOutcome.OK), {
                (Platform.WINDOWS, BuildProfile.OPTIMIZED):
                uu.TestExpectation(TestOutcome.TIMEOUT),
            }))


class MetadataTypesUnittest(unittest.TestCase):

  def testMetadataTestDefaults(self) -> None:
    test = data_types.MetadataTest()
    self.assertEqual(test.properties, data_types.TestProps())
    self.assertIsNone(test.properties.expectations)
    self.assertFalse(test.properties.is_disabled)
    self.assertEqual(test.subtests, {})

  def testMetadataFileEquality(self) -> None:
    a = data_types.MetadataFile([('prefs', '[a:true]')],
                                {'foo.html': data_types.MetadataTest()})
    b = data_types.MetadataFile([('prefs', '[a:true]')],
                                {'foo.html': data_types.MetadataTest()})
    self.assertEqual(a, b)
    b.tests['foo.html'].properties.is_disabled = True
    self.assertNotEqual(a, b)


if __name__ == '__main__':
  unittest.main(verbosity=2)
