# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Reading and writing of WPT expectation metadata files.

Only the subset of the format that describes WebGPU CTS expectations is
understood:

  prefs: [dom.webgpu.enabled:true]
  [cts.https.html?q=webgpu:api,operation,foo:*]
    disabled: true
    expected:
      if os == "win" and debug: [OK, TIMEOUT]
      if os == "linux": CRASH
      OK
    [subtest name]
      expected: FAIL

File-level properties are kept verbatim. Test and subtest sections may only
hold `expected` and `disabled` properties. Conditions may test `os` for
equality and `debug` for truthiness, joined with `and`. The first matching
condition wins, an unconditional value applies when none match, and the
default outcome applies when there is no unconditional value.
"""

import collections
import re
from typing import Callable, Dict, List, Optional, Tuple

from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import outcomes

INDENT = '  '
EXPECTED_PROPERTY = 'expected'
DISABLED_PROPERTY = 'disabled'

PROPERTY_REGEX = re.compile(r'^(?P<key>[A-Za-z0-9_.-]+):\s*(?P<value>.*)$')
CONDITIONAL_REGEX = re.compile(r'^if\s+(?P<condition>.+?)\s*:\s*(?P<value>.+)$')
OS_CONDITION_REGEX = re.compile(r'^os\s*==\s*"(?P<os>[^"]*)"$')

ConditionType = Callable[[outcomes.Platform, outcomes.BuildProfile], bool]


class MetadataParseError(ValueError):
  """Raised when metadata text cannot be parsed."""

  def __init__(self, path: str, line_number: int, message: str):
    super().__init__('%s:%d: %s' % (path, line_number, message))
    self.path = path
    self.line_number = line_number


class _Line:

  def __init__(self, number: int, depth: int, text: str, raw: str):
    self.number = number
    self.depth = depth
    self.text = text
    self.raw = raw


def _UnescapeSectionName(name: str) -> str:
  return re.sub(r'\\(.)', r'\1', name)


def _EscapeSectionName(name: str) -> str:
  return name.replace('\\', '\\\\').replace(']', '\\]')


def _IsSectionHeader(text: str) -> bool:
  return text.startswith('[') and text.endswith(']') and len(text) > 2


class _Parser:

  def __init__(self, text: str, path: str):
    self._path = path
    self._lines = []
    for number, raw in enumerate(text.splitlines(), start=1):
      stripped = raw.strip()
      if not stripped or stripped.startswith('#'):
        continue
      indent = len(raw) - len(raw.lstrip(' '))
      if indent % len(INDENT):
        raise self._Error(number, 'indentation must be a multiple of %d' %
                          len(INDENT))
      self._lines.append(
          _Line(number, indent // len(INDENT), stripped, raw.rstrip()))
    self._index = 0

  def _Error(self, line_number: int, message: str) -> MetadataParseError:
    return MetadataParseError(self._path, line_number, message)

  def _Peek(self) -> Optional[_Line]:
    if self._index < len(self._lines):
      return self._lines[self._index]
    return None

  def _Next(self) -> _Line:
    line = self._lines[self._index]
    self._index += 1
    return line

  def _TakeContinuation(self, depth: int) -> List[_Line]:
    """Consumes every following line nested deeper than |depth|."""
    continuation = []
    while self._Peek() is not None and self._Peek().depth > depth:
      continuation.append(self._Next())
    return continuation

  def Parse(self) -> data_types.MetadataFile:
    metadata_file = data_types.MetadataFile()
    while self._Peek() is not None:
      line = self._Next()
      if line.depth != 0:
        raise self._Error(line.number, 'unexpected indentation')
      if _IsSectionHeader(line.text):
        name = _UnescapeSectionName(line.text[1:-1])
        if name in metadata_file.tests:
          raise self._Error(line.number, 'duplicate test section %r' % name)
        metadata_file.tests[name] = self._ParseTest()
        continue
      if metadata_file.tests:
        raise self._Error(line.number,
                          'file properties must precede all test sections')
      match = PROPERTY_REGEX.match(line.text)
      if not match:
        raise self._Error(line.number, 'expected a property or a section')
      value = match.group('value')
      for continuation in self._TakeContinuation(0):
        value += '\n' + continuation.raw
      metadata_file.properties.append((match.group('key'), value))
    return metadata_file

  def _ParseTest(self) -> data_types.MetadataTest:
    test = data_types.MetadataTest(
        self._ParseProperties(1, outcomes.TestOutcome))
    while self._Peek() is not None and self._Peek().depth == 1:
      line = self._Next()
      if not _IsSectionHeader(line.text):
        raise self._Error(line.number,
                          'test properties must precede all subtest sections')
      name = _UnescapeSectionName(line.text[1:-1])
      if name in test.subtests:
        raise self._Error(line.number, 'duplicate subtest section %r' % name)
      test.subtests[name] = self._ParseProperties(2, outcomes.SubtestOutcome)
      nested = self._Peek()
      if nested is not None and nested.depth > 1:
        raise self._Error(nested.number, 'unexpected indentation')
    return test

  def _ParseProperties(self, depth: int, outcome_type: data_types.OutcomeType
                       ) -> data_types.TestProps:
    properties = data_types.TestProps()
    seen = set()
    while self._Peek() is not None and self._Peek().depth == depth:
      if _IsSectionHeader(self._Peek().text):
        break
      line = self._Next()
      match = PROPERTY_REGEX.match(line.text)
      if not match:
        raise self._Error(line.number, 'expected a property')
      key = match.group('key')
      if key in seen:
        raise self._Error(line.number, 'duplicate property %r' % key)
      seen.add(key)
      value = match.group('value')
      continuation = self._TakeContinuation(depth)

      if key == EXPECTED_PROPERTY:
        properties.expectations = self._ParseExpected(line, value,
                                                      continuation,
                                                      outcome_type)
      elif key == DISABLED_PROPERTY:
        if continuation or not value:
          raise self._Error(line.number,
                            'only unconditional `disabled` values are '
                            'supported')
        properties.is_disabled = value.lower() != 'false'
      else:
        raise self._Error(line.number, 'unsupported property %r' % key)
    return properties

  def _ParseExpected(self, line: _Line, value: str,
                     continuation: List[_Line],
                     outcome_type: data_types.OutcomeType
                     ) -> data_types.NormalizedExpectations:
    if value:
      if continuation:
        raise self._Error(continuation[0].number, 'unexpected indentation')
      return data_types.NormalizedExpectations.Uniform(
          self._ParseExpectation(line.number, value, outcome_type))
    if not continuation:
      raise self._Error(line.number, 'missing value for `expected`')

    branches = []
    fallback = None
    for branch_line in continuation:
      if branch_line.depth != line.depth + 1:
        raise self._Error(branch_line.number, 'unexpected indentation')
      if fallback is not None:
        raise self._Error(branch_line.number,
                          'unreachable value after unconditional value')
      match = CONDITIONAL_REGEX.match(branch_line.text)
      if match:
        branches.append(
            (self._ParseCondition(branch_line.number,
                                  match.group('condition')),
             self._ParseExpectation(branch_line.number, match.group('value'),
                                    outcome_type)))
      else:
        fallback = self._ParseExpectation(branch_line.number,
                                          branch_line.text, outcome_type)

    fallback = fallback or data_types.Expectation.Default(outcome_type)

    def Query(platform: outcomes.Platform,
              build_profile: outcomes.BuildProfile) -> data_types.Expectation:
      for condition, expectation in branches:
        if condition(platform, build_profile):
          return expectation
      return fallback

    return data_types.NormalizedExpectations.FromExpanded(
        data_types.ExpandedExpectations.FromQuery(Query))

  def _ParseCondition(self, line_number: int, text: str) -> ConditionType:
    platforms = set(outcomes.Platform)
    build_profiles = set(outcomes.BuildProfile)
    for term in re.split(r'\s+and\s+', text.strip()):
      os_match = OS_CONDITION_REGEX.match(term)
      if os_match:
        try:
          platforms &= {outcomes.Platform(os_match.group('os'))}
        except ValueError:
          raise self._Error(line_number, 'unknown os %r' %
                            os_match.group('os')) from None
      elif term == 'debug':
        build_profiles &= {outcomes.BuildProfile.DEBUG}
      elif re.match(r'^not\s+debug$', term):
        build_profiles &= {outcomes.BuildProfile.OPTIMIZED}
      else:
        raise self._Error(line_number, 'unsupported condition %r' % term)
    return lambda p, bp: p in platforms and bp in build_profiles

  def _ParseExpectation(self, line_number: int, text: str,
                        outcome_type: data_types.OutcomeType
                        ) -> data_types.Expectation:
    text = text.strip()
    if text.startswith('[') and text.endswith(']'):
      names = [n.strip() for n in text[1:-1].split(',') if n.strip()]
    else:
      names = [text]
    if not names:
      raise self._Error(line_number, 'expected at least one outcome')
    parsed = []
    for name in names:
      outcome = outcomes.ParseOutcome(outcome_type, name)
      if outcome is None:
        raise self._Error(line_number, 'unknown outcome %r' % name)
      parsed.append(outcome)
    return data_types.Expectation.FromOutcomes(outcome_type, parsed)


def ParseFile(text: str, path: str = '<string>') -> data_types.MetadataFile:
  """Parses the contents of a metadata file.

  Args:
    text: The contents of the file.
    path: The path of the file, used in error messages.

  Returns:
    A data_types.MetadataFile.

  Raises:
    MetadataParseError: |text| is not valid metadata.
  """
  return _Parser(text, path).Parse()


def _FormatCondition(platform: Optional[outcomes.Platform],
                     build_profile: Optional[outcomes.BuildProfile]) -> str:
  terms = []
  if platform is not None:
    terms.append('os == "%s"' % platform.value)
  if build_profile == outcomes.BuildProfile.DEBUG:
    terms.append('debug')
  elif build_profile == outcomes.BuildProfile.OPTIMIZED:
    terms.append('not debug')
  return ' and '.join(terms)


def _GetBranches(expectations: data_types.NormalizedExpectations
                 ) -> List[Tuple[str, data_types.Expectation, int]]:
  """Returns (condition, Expectation, configuration count) per branch."""
  if expectations.uniform is not None:
    groups = [(None, expectations.uniform)]
  else:
    groups = list(expectations.by_platform.items())

  branches = []
  for platform, profile_expectations in groups:
    if profile_expectations.IsUniform():
      count = len(outcomes.BuildProfile)
      if platform is None:
        count *= len(outcomes.Platform)
      branches.append((_FormatCondition(platform, None),
                       profile_expectations.uniform, count))
      continue
    count = 1 if platform is not None else len(outcomes.Platform)
    for build_profile, e in profile_expectations.by_build_profile.items():
      branches.append((_FormatCondition(platform, build_profile), e, count))
  return branches


def FormatExpected(expectations: data_types.NormalizedExpectations,
                   depth: int) -> List[str]:
  """Returns the lines of an `expected` property at the given depth.

  A default, uniform expectation needs no property, so no lines are returned
  for it. Otherwise, the value covering the most configurations becomes the
  unconditional value and every other branch gets a condition.
  """
  if expectations.IsDefault():
    return []
  indent = INDENT * depth
  if expectations.uniform is not None and expectations.uniform.IsUniform():
    return ['%s%s: %s' % (indent, EXPECTED_PROPERTY,
                          expectations.uniform.uniform)]

  branches = _GetBranches(expectations)
  counts = collections.Counter()
  for _, e, count in branches:
    counts[e] += count
  fallback = None
  for _, e, _ in branches:
    if fallback is None or counts[e] > counts[fallback]:
      fallback = e

  lines = ['%s%s:' % (indent, EXPECTED_PROPERTY)]
  branch_indent = INDENT * (depth + 1)
  for condition, e, _ in branches:
    if e != fallback:
      lines.append('%sif %s: %s' % (branch_indent, condition, e))
  lines.append('%s%s' % (branch_indent, fallback))
  return lines


def _FormatProperties(properties: data_types.TestProps,
                      depth: int) -> List[str]:
  lines = []
  if properties.is_disabled:
    lines.append('%s%s: true' % (INDENT * depth, DISABLED_PROPERTY))
  if properties.expectations is not None:
    lines.extend(FormatExpected(properties.expectations, depth))
  return lines


def FormatFile(metadata_file: data_types.MetadataFile) -> str:
  """Returns the normalized text of |metadata_file|.

  Tests and subtests are written sorted by name.
  """
  chunks = []
  if metadata_file.properties:
    lines = []
    for key, value in metadata_file.properties:
      head, _, tail = value.partition('\n')
      lines.append('%s: %s' % (key, head) if head else '%s:' % key)
      if tail:
        lines.append(tail)
    chunks.append(lines)

  for test_name in sorted(metadata_file.tests):
    test = metadata_file.tests[test_name]
    lines = ['[%s]' % _EscapeSectionName(test_name)]
    lines.extend(_FormatProperties(test.properties, 1))
    for subtest_name in sorted(test.subtests):
      lines.append('%s[%s]' % (INDENT, _EscapeSectionName(subtest_name)))
      lines.extend(_FormatProperties(test.subtests[subtest_name], 2))
    chunks.append(lines)

  return '\n\n'.join('\n'.join(lines) for lines in chunks) + '\n'


def ParseFiles(contents_by_path: Dict[str, str]
               ) -> Tuple[Dict[str, data_types.MetadataFile],
                          List[MetadataParseError]]:
  """Parses several files, collecting errors instead of stopping at one.

  Returns:
    A tuple (files, errors). |files| maps each successfully parsed path to its
    data_types.MetadataFile. |errors| contains a MetadataParseError for each
    file that failed to parse.
  """
  files = {}
  errors = []
  for path, text in contents_by_path.items():
    try:
      files[path] = ParseFile(text, path)
    except MetadataParseError as e:
      errors.append(e)
  return files, errors
