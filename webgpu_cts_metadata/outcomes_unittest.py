#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import unittest

from webgpu_cts_metadata import outcomes


class DefaultUnittest(unittest.TestCase):

  def testTestOutcomeDefault(self) -> None:
    self.assertEqual(outcomes.TestOutcome.Default(), outcomes.TestOutcome.OK)

  def testSubtestOutcomeDefault(self) -> None:
    self.assertEqual(outcomes.SubtestOutcome.Default(),
                     outcomes.SubtestOutcome.PASS)


class AllConfigurationsUnittest(unittest.TestCase):

  def testPlatformMajorOrder(self) -> None:
    """Tests that configurations are yielded grouped by platform."""
    self.assertEqual(list(outcomes.AllConfigurations()), [
        (outcomes.Platform.WINDOWS, outcomes.BuildProfile.DEBUG),
        (outcomes.Platform.WINDOWS, outcomes.BuildProfile.OPTIMIZED),
        (outcomes.Platform.LINUX, outcomes.BuildProfile.DEBUG),
        (outcomes.Platform.LINUX, outcomes.BuildProfile.OPTIMIZED),
        (outcomes.Platform.MAC_OS, outcomes.BuildProfile.DEBUG),
        (outcomes.Platform.MAC_OS, outcomes.BuildProfile.OPTIMIZED),
    ])


class ParseOutcomeUnittest(unittest.TestCase):

  def testValidSpelling(self) -> None:
    self.assertEqual(outcomes.ParseOutcome(outcomes.SubtestOutcome, 'NOTRUN'),
                     outcomes.SubtestOutcome.NOTRUN)
    self.assertEqual(outcomes.ParseOutcome(outcomes.TestOutcome, 'TIMEOUT'),
                     outcomes.TestOutcome.TIMEOUT)

  def testInvalidSpelling(self) -> None:
    """Tests that unknown or wrongly typed spellings are rejected."""
    self.assertIsNone(outcomes.ParseOutcome(outcomes.TestOutcome, 'PASS'))
    self.assertIsNone(outcomes.ParseOutcome(outcomes.SubtestOutcome, 'OK'))
    self.assertIsNone(outcomes.ParseOutcome(outcomes.SubtestOutcome, 'pass'))
    self.assertIsNone(outcomes.ParseOutcome(outcomes.SubtestOutcome, ''))


if __name__ == '__main__':
  unittest.main(verbosity=2)
