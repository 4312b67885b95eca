# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Closed enumerations of test outcomes and run configurations.

The value of each member is its spelling in metadata files and execution
reports. Definition order is significant: it is the iteration order used when
expanding expectations and the bit order used by data_types.Expectation.
"""

from enum import Enum


class TestOutcome(str, Enum):
  OK = 'OK'
  TIMEOUT = 'TIMEOUT'
  CRASH = 'CRASH'
  ERROR = 'ERROR'
  SKIP = 'SKIP'

  @classmethod
  def Default(cls) -> 'TestOutcome':
    return cls.OK


class SubtestOutcome(str, Enum):
  PASS = 'PASS'
  FAIL = 'FAIL'
  TIMEOUT = 'TIMEOUT'
  NOTRUN = 'NOTRUN'
  CRASH = 'CRASH'

  @classmethod
  def Default(cls) -> 'SubtestOutcome':
    return cls.PASS


class Platform(str, Enum):
  WINDOWS = 'win'
  LINUX = 'linux'
  MAC_OS = 'mac'


class BuildProfile(str, Enum):
  DEBUG = 'debug'
  OPTIMIZED = 'optimized'


def AllConfigurations():
  """Yields every (Platform, BuildProfile) pair, platform-major."""
  for platform in Platform:
    for build_profile in BuildProfile:
      yield platform, build_profile


def ParseOutcome(outcome_type, value: str):
  """Returns the |outcome_type| member spelled |value|, or None."""
  try:
    return outcome_type(value)
  except ValueError:
    return None
