# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Collection of human-readable advisory messages produced during a run."""

import logging
from typing import List, NamedTuple


class Diagnostic(NamedTuple):
  level: int
  message: str


class Diagnostics:
  """Records leveled messages and mirrors each of them into logging.

  Callers decide whether any recorded message should fail the run, typically
  by checking HasErrors() once all items have been processed.
  """

  def __init__(self):
    self._diagnostics = []

  def Add(self, level: int, message: str, *args) -> None:
    if args:
      message = message % args
    self._diagnostics.append(Diagnostic(level, message))
    logging.log(level, message)

  def Debug(self, message: str, *args) -> None:
    self.Add(logging.DEBUG, message, *args)

  def Info(self, message: str, *args) -> None:
    self.Add(logging.INFO, message, *args)

  def Warning(self, message: str, *args) -> None:
    self.Add(logging.WARNING, message, *args)

  def Error(self, message: str, *args) -> None:
    self.Add(logging.ERROR, message, *args)

  def HasErrors(self) -> bool:
    return any(d.level >= logging.ERROR for d in self._diagnostics)

  def AtLevel(self, level: int) -> List[str]:
    """Returns the messages recorded at exactly |level|, in order."""
    return [d.message for d in self._diagnostics if d.level == level]

  def __iter__(self):
    return iter(self._diagnostics)

  def __len__(self) -> int:
    return len(self._diagnostics)
