# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Symbolic test paths shared by execution reports and metadata files.

A test is reached from two directions: by the URL path an execution report
records for it, and by the location of the metadata file describing it plus
the name of its section in that file. Both are turned into a TestPath so that
the two can be correlated.
"""

from enum import Enum
import posixpath
from typing import NamedTuple, Optional, Tuple

from webgpu_cts_metadata import constants


class Browser(str, Enum):
  FIREFOX = 'firefox'
  SERVO = 'servo'


class TestVisibility(str, Enum):
  # A test from upstream WPT. Its metadata may still live in a browser's tree.
  PUBLIC = 'public'
  # A test only present in a browser's own tree.
  PRIVATE = 'private'


class PathFormatError(ValueError):
  """Raised when a TestPath cannot be derived from a report or metadata."""


class TestScope(NamedTuple):
  """The file and URL root a test path is relative to."""
  browser: Browser
  visibility: TestVisibility


FX_PRIVATE_SCOPE = TestScope(Browser.FIREFOX, TestVisibility.PRIVATE)
FX_PUBLIC_SCOPE = TestScope(Browser.FIREFOX, TestVisibility.PUBLIC)
SERVO_PUBLIC_SCOPE = TestScope(Browser.SERVO, TestVisibility.PUBLIC)

# URL prefixes that execution reports use for each browser, tried in order.
REPORT_URL_PREFIXES = {
    Browser.FIREFOX: (
        ('/_mozilla/', FX_PRIVATE_SCOPE),
        ('/', FX_PUBLIC_SCOPE),
    ),
    Browser.SERVO: (('/_webgpu/', SERVO_PUBLIC_SCOPE), ),
}

# Metadata roots for each scope, tried in order. The private Firefox root
# extends the public one, so it has to come first.
METADATA_SCOPE_DIRS = (
    (constants.SCOPE_DIR_FX_PRIVATE, FX_PRIVATE_SCOPE),
    (constants.SCOPE_DIR_FX_PUBLIC, FX_PUBLIC_SCOPE),
    (constants.SCOPE_DIR_SERVO_PUBLIC, SERVO_PUBLIC_SCOPE),
)

RUNNER_URL_SCOPE_PREFIXES = {
    TestVisibility.PUBLIC: '',
    TestVisibility.PRIVATE: '_mozilla/',
}


def _SplitVariant(name: str) -> Tuple[str, Optional[str]]:
  """Splits |name| into a base name and an optional '?...' variant."""
  index = name.find(constants.VARIANT_START)
  if index == -1:
    return name, None
  return name[:index], name[index:]


def _StripScopeDir(path: str, scope_dir: str) -> Optional[str]:
  """Strips |scope_dir| from |path| if it is a leading path component match."""
  if path == scope_dir:
    return ''
  if path.startswith(scope_dir + '/'):
    return path[len(scope_dir) + 1:]
  return None


class TestPath(NamedTuple):
  """A single symbolic path to a test and its metadata.

  Two TestPaths are equal if and only if their scope, path and variant all
  match.

  Attributes:
    scope: The TestScope |path| is relative to.
    path: A relative, '/'-separated path into |scope|.
    variant: The '?...' variant of the test at |path|, or None. A test file
        generally has either a single test without a variant or several tests
        that all have one.
  """
  scope: TestScope
  path: str
  variant: Optional[str] = None

  @classmethod
  def FromExecutionReport(cls, test_url_path: str,
                          browser: Browser) -> 'TestPath':
    """Derives a TestPath from a test name in an execution report.

    Args:
      test_url_path: The URL path recorded for the test, e.g.
          '/_mozilla/webgpu/cts.https.html?q=webgpu:api,foo:*'.
      browser: The Browser the report was produced by.

    Returns:
      A TestPath.

    Raises:
      PathFormatError: No known prefix matched or the path is malformed.
    """

    def Error() -> PathFormatError:
      return PathFormatError(
          'failed to derive test path from execution report\'s entry for a '
          'test at URL path %r' % test_url_path)

    for prefix, scope in REPORT_URL_PREFIXES[browser]:
      if test_url_path.startswith(prefix):
        path = test_url_path[len(prefix):]
        break
    else:
      raise Error()

    if constants.DISALLOWED_PATH_SEPARATOR in path:
      raise Error()

    # Only the trailing path segment may carry a variant.
    head, separator, base_name = path.rpartition('/')
    base_name, variant = _SplitVariant(base_name)
    path = head + separator + base_name
    if not path or path.endswith('/'):
      raise Error()
    return cls(scope, path, variant)

  @classmethod
  def FromMetadataTest(cls, rel_meta_file_path: str,
                       test_name: str) -> 'TestPath':
    """Derives a TestPath from a metadata file location and a test section.

    Args:
      rel_meta_file_path: The metadata file's path relative to the checkout
          root, e.g. 'testing/web-platform/meta/webgpu/cts.https.html.ini'.
      test_name: The name of the test section, e.g.
          'cts.https.html?q=webgpu:api,foo:*'.

    Returns:
      A TestPath.

    Raises:
      PathFormatError: The file is not a metadata file in a known scope, or
          its name does not match |test_name|.
    """

    def Error() -> PathFormatError:
      return PathFormatError(
          'failed to derive test path from relative metadata path %r and '
          'test name %r' % (rel_meta_file_path, test_name))

    rel_path = rel_meta_file_path.replace('\\', '/')
    if not rel_path.endswith(constants.METADATA_FILE_SUFFIX):
      raise Error()
    rel_path = rel_path[:-len(constants.METADATA_FILE_SUFFIX)]

    for scope_dir, scope in METADATA_SCOPE_DIRS:
      path = _StripScopeDir(rel_path, scope_dir)
      if path is not None:
        break
    else:
      raise Error()

    path = _StripScopeDir(path, constants.METADATA_DIR_NAME)
    if not path:
      raise Error()

    base_name, variant = _SplitVariant(test_name)
    if posixpath.basename(path) != base_name:
      raise Error()
    return cls(scope, path, variant)

  def CtsQueryKey(self) -> Optional[str]:
    """Returns the CTS query identifying this test, if it is a CTS test.

    CTS tests all share one harness file and are distinguished only by their
    query variant, so the query is a more reliable join key than the path.
    """
    if self.variant is None:
      return None
    query_prefix = constants.CTS_QUERY_PREFIX + constants.CTS_QUERY_SUITE_PREFIX
    if not self.variant.startswith(query_prefix):
      return None
    if posixpath.basename(self.path) != constants.CTS_HARNESS_FILE_NAME:
      return None
    return self.variant[len(constants.CTS_QUERY_PREFIX):]

  def TestName(self) -> str:
    """Returns the name of this test's section in its metadata file."""
    return posixpath.basename(self.path) + (self.variant or '')

  def RunnerUrlPath(self) -> str:
    """Returns the path the test runner uses for this test."""
    return '%s%s%s' % (RUNNER_URL_SCOPE_PREFIXES[self.scope.visibility],
                       self.path, self.variant or '')

  def RelMetadataPath(self) -> str:
    """Returns the '/'-separated path of this test's metadata file."""
    for scope_dir, scope in METADATA_SCOPE_DIRS:
      if scope == self.scope:
        return '%s/%s/%s%s' % (scope_dir, constants.METADATA_DIR_NAME,
                               self.path, constants.METADATA_FILE_SUFFIX)
    raise PathFormatError('no metadata directory is known for scope %r' %
                          (self.scope, ))
