#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.

import logging
import unittest
from unittest import mock

from webgpu_cts_metadata import diagnostics as diagnostics_module


class DiagnosticsUnittest(unittest.TestCase):

  def setUp(self) -> None:
    self._log_patcher = mock.patch.object(logging, 'log')
    self._log_mock = self._log_patcher.start()
    self.addCleanup(self._log_patcher.stop)
    self.diagnostics = diagnostics_module.Diagnostics()

  def testRecordsAndLogs(self) -> None:
    self.diagnostics.Warning('duplicate entry for %r', 'foo')
    self.assertEqual(list(self.diagnostics), [
        diagnostics_module.Diagnostic(logging.WARNING,
                                      "duplicate entry for 'foo'"),
    ])
    self._log_mock.assert_called_once_with(logging.WARNING,
                                           "duplicate entry for 'foo'")

  def testMessageWithoutArgsNotFormatted(self) -> None:
    self.diagnostics.Info('100% done')
    self.assertEqual(self.diagnostics.AtLevel(logging.INFO), ['100% done'])

  def testHasErrors(self) -> None:
    self.diagnostics.Debug('a')
    self.diagnostics.Info('b')
    self.diagnostics.Warning('c')
    self.assertFalse(self.diagnostics.HasErrors())
    self.diagnostics.Error('d')
    self.assertTrue(self.diagnostics.HasErrors())
    self.assertEqual(len(self.diagnostics), 4)

  def testAtLevel(self) -> None:
    self.diagnostics.Warning('first')
    self.diagnostics.Error('error')
    self.diagnostics.Warning('second')
    self.assertEqual(self.diagnostics.AtLevel(logging.WARNING),
                     ['first', 'second'])
    self.assertEqual(self.diagnostics.AtLevel(logging.ERROR), ['error'])


if __name__ == '__main__':
  unittest.main(verbosity=2)
