# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Various custom data types for use in WebGPU CTS metadata handling."""

from typing import (Callable, Dict, Iterable, Iterator, List, NamedTuple,
                    Optional, Tuple, Type, Union)

from webgpu_cts_metadata import outcomes as outcomes_module
from webgpu_cts_metadata.outcomes import BuildProfile, Platform

OutcomeType = Union[Type[outcomes_module.TestOutcome],
                    Type[outcomes_module.SubtestOutcome]]
Outcome = Union[outcomes_module.TestOutcome, outcomes_module.SubtestOutcome]
ConfigurationType = Tuple[Platform, BuildProfile]
OutcomesLike = Union['Expectation', Outcome, Iterable[Outcome]]

# Bit index of each outcome, keyed by outcome type. Filled lazily.
_bit_indices_by_type = {}


class EmptyExpectationError(ValueError):
  """Raised when an Expectation would contain no outcomes."""


def _GetBit(outcome: Outcome) -> int:
  outcome_type = type(outcome)
  indices = _bit_indices_by_type.get(outcome_type)
  if indices is None:
    indices = {o: i for i, o in enumerate(outcome_type)}
    _bit_indices_by_type[outcome_type] = indices
  return 1 << indices[outcome]


class Expectation:
  """A non-empty set of acceptable outcomes for a test or subtest.

  A single-member set is "permanent", a multi-member set is "intermittent".
  The set is stored as a bitmask over the members of |outcome_type|, so
  equality and hashing are exact.
  """

  __slots__ = ('_outcome_type', '_mask')

  def __init__(self, outcome_type: OutcomeType, mask: int):
    if not mask:
      raise EmptyExpectationError(
          'Expectations must contain at least one %s' % outcome_type.__name__)
    assert 0 < mask < (1 << len(outcome_type))
    self._outcome_type = outcome_type
    self._mask = mask

  @classmethod
  def FromOutcomes(cls, outcome_type: OutcomeType,
                   outcomes: Iterable[Outcome]) -> 'Expectation':
    mask = 0
    for o in outcomes:
      assert isinstance(o, outcome_type)
      mask |= _GetBit(o)
    return cls(outcome_type, mask)

  @classmethod
  def Permanent(cls, outcome: Outcome) -> 'Expectation':
    return cls(type(outcome), _GetBit(outcome))

  @classmethod
  def Default(cls, outcome_type: OutcomeType) -> 'Expectation':
    return cls.Permanent(outcome_type.Default())

  @property
  def outcome_type(self) -> OutcomeType:
    return self._outcome_type

  def _MaskOf(self, other: OutcomesLike) -> int:
    if isinstance(other, Expectation):
      assert other._outcome_type is self._outcome_type
      return other._mask
    if isinstance(other, self._outcome_type):
      return _GetBit(other)
    mask = 0
    for o in other:
      assert isinstance(o, self._outcome_type)
      mask |= _GetBit(o)
    return mask

  def Union(self, other: OutcomesLike) -> 'Expectation':
    """Returns a new Expectation containing the outcomes of both operands."""
    return Expectation(self._outcome_type, self._mask | self._MaskOf(other))

  def __or__(self, other) -> 'Expectation':
    return self.Union(other)

  def IsSuperset(self, other: 'Expectation') -> bool:
    other_mask = self._MaskOf(other)
    return self._mask & other_mask == other_mask

  def IsDisjoint(self, outcomes: OutcomesLike) -> bool:
    return not self._mask & self._MaskOf(outcomes)

  def IsPermanent(self) -> bool:
    return len(self) == 1

  def AsPermanent(self) -> Optional[Outcome]:
    """Returns the sole outcome if this Expectation is permanent, else None."""
    if not self.IsPermanent():
      return None
    return next(iter(self))

  def __iter__(self) -> Iterator[Outcome]:
    for o in self._outcome_type:
      if self._mask & _GetBit(o):
        yield o

  def __len__(self) -> int:
    return bin(self._mask).count('1')

  def __contains__(self, outcome: Outcome) -> bool:
    return isinstance(outcome, self._outcome_type) and bool(
        self._mask & _GetBit(outcome))

  def __eq__(self, other) -> bool:
    return (isinstance(other, Expectation)
            and self._outcome_type is other._outcome_type
            and self._mask == other._mask)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __hash__(self) -> int:
    return hash((self._outcome_type, self._mask))

  def __str__(self) -> str:
    permanent = self.AsPermanent()
    if permanent is not None:
      return permanent.value
    return '[%s]' % ', '.join(o.value for o in self)

  def __repr__(self) -> str:
    return 'Expectation(%s)' % self


class ExpandedExpectations:
  """A dense table of Expectations, one per (Platform, BuildProfile).

  Every configuration is always populated. Instances are not meant to be
  modified after construction.
  """

  def __init__(self, expectations_by_config: Dict[ConfigurationType,
                                                  Expectation]):
    assert len(expectations_by_config) == len(Platform) * len(BuildProfile)
    outcome_types = set(e.outcome_type for e in expectations_by_config.values())
    assert len(outcome_types) == 1
    self._outcome_type = outcome_types.pop()
    self._expectations_by_config = expectations_by_config

  @classmethod
  def FromQuery(cls, query: Callable[[Platform, BuildProfile], Expectation]
                ) -> 'ExpandedExpectations':
    """Builds an instance by calling |query| once per configuration."""
    expectations_by_config = {}
    for platform, build_profile in outcomes_module.AllConfigurations():
      expectations_by_config[(platform, build_profile)] = query(
          platform, build_profile)
    return cls(expectations_by_config)

  @classmethod
  def Uniform(cls, expectation: Expectation) -> 'ExpandedExpectations':
    return cls.FromQuery(lambda _p, _bp: expectation)

  @property
  def outcome_type(self) -> OutcomeType:
    return self._outcome_type

  def Get(self, platform: Platform, build_profile: BuildProfile) -> Expectation:
    return self._expectations_by_config[(platform, build_profile)]

  def __getitem__(self, config: ConfigurationType) -> Expectation:
    return self._expectations_by_config[config]

  def Items(self) -> Iterator[Tuple[ConfigurationType, Expectation]]:
    """Yields (configuration, Expectation) pairs, platform-major."""
    for config in outcomes_module.AllConfigurations():
      yield config, self._expectations_by_config[config]

  def ForPlatform(self, platform: Platform) -> Dict[BuildProfile, Expectation]:
    return {bp: self.Get(platform, bp) for bp in BuildProfile}

  def __eq__(self, other) -> bool:
    return (isinstance(other, ExpandedExpectations)
            and self._expectations_by_config == other._expectations_by_config)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    return 'ExpandedExpectations(%s)' % ', '.join(
        '%s/%s: %s' % (p.value, bp.value, e) for (p, bp), e in self.Items())


def _SameValue(values: Iterable):
  """Returns the shared value if every item in |values| is equal, else None."""
  values = list(values)
  first = values[0]
  for v in values[1:]:
    if v != first:
      return None
  return first


class ProfileExpectations:
  """Expectations for a single platform, possibly collapsed.

  Either one Expectation covering every BuildProfile, or one Expectation per
  BuildProfile.
  """

  def __init__(self,
               uniform: Optional[Expectation] = None,
               by_build_profile: Optional[Dict[BuildProfile,
                                               Expectation]] = None):
    assert (uniform is None) != (by_build_profile is None)
    if by_build_profile is not None:
      assert set(by_build_profile) == set(BuildProfile)
    self.uniform = uniform
    self.by_build_profile = by_build_profile

  @classmethod
  def Uniform(cls, expectation: Expectation) -> 'ProfileExpectations':
    return cls(uniform=expectation)

  @classmethod
  def ByBuildProfile(cls, by_build_profile: Dict[BuildProfile, Expectation]
                     ) -> 'ProfileExpectations':
    return cls(by_build_profile=dict(by_build_profile))

  def IsUniform(self) -> bool:
    return self.uniform is not None

  def Get(self, build_profile: BuildProfile) -> Expectation:
    if self.uniform is not None:
      return self.uniform
    return self.by_build_profile[build_profile]

  def __eq__(self, other) -> bool:
    return (isinstance(other, ProfileExpectations)
            and self.uniform == other.uniform
            and self.by_build_profile == other.by_build_profile)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    if self.uniform is not None:
      return 'Uniform(%s)' % self.uniform
    return 'ByBuildProfile(%s)' % ', '.join(
        '%s: %s' % (bp.value, e) for bp, e in self.by_build_profile.items())


class NormalizedExpectations:
  """A lossless, collapsed encoding of ExpandedExpectations.

  The structure is exactly two levels deep: either one ProfileExpectations
  shared by every Platform, or one ProfileExpectations per Platform. Use
  FromExpanded() to get the most compact encoding of a table; Expand() is its
  inverse.
  """

  def __init__(self,
               uniform: Optional[ProfileExpectations] = None,
               by_platform: Optional[Dict[Platform,
                                          ProfileExpectations]] = None):
    assert (uniform is None) != (by_platform is None)
    if by_platform is not None:
      assert set(by_platform) == set(Platform)
    self.uniform = uniform
    self.by_platform = by_platform

  @classmethod
  def Uniform(cls, profile_expectations: Union[ProfileExpectations,
                                               Expectation]
              ) -> 'NormalizedExpectations':
    if isinstance(profile_expectations, Expectation):
      profile_expectations = ProfileExpectations.Uniform(profile_expectations)
    return cls(uniform=profile_expectations)

  @classmethod
  def ByPlatform(cls, by_platform: Dict[Platform, ProfileExpectations]
                 ) -> 'NormalizedExpectations':
    return cls(by_platform=dict(by_platform))

  @classmethod
  def Default(cls, outcome_type: OutcomeType) -> 'NormalizedExpectations':
    return cls.Uniform(Expectation.Default(outcome_type))

  @classmethod
  def FromExpanded(cls, expanded: ExpandedExpectations
                   ) -> 'NormalizedExpectations':
    """Collapses |expanded| into its most compact equivalent encoding.

    Collapsing is tried in order:
      1. The same Expectation in every configuration.
      2. The same per-BuildProfile breakdown on every Platform.
      3. Per Platform, either a single Expectation or a per-BuildProfile
         breakdown.
    """
    uniform = _SameValue(e for _, e in expanded.Items())
    if uniform is not None:
      return cls.Uniform(ProfileExpectations.Uniform(uniform))

    per_platform = {p: expanded.ForPlatform(p) for p in Platform}
    uniform_per_platform = _SameValue(per_platform.values())
    if uniform_per_platform is not None:
      return cls.Uniform(
          ProfileExpectations.ByBuildProfile(uniform_per_platform))

    by_platform = {}
    for platform, by_build_profile in per_platform.items():
      uniform_per_build_profile = _SameValue(by_build_profile.values())
      if uniform_per_build_profile is not None:
        by_platform[platform] = ProfileExpectations.Uniform(
            uniform_per_build_profile)
      else:
        by_platform[platform] = ProfileExpectations.ByBuildProfile(
            by_build_profile)
    return cls.ByPlatform(by_platform)

  def Get(self, platform: Platform, build_profile: BuildProfile) -> Expectation:
    if self.uniform is not None:
      return self.uniform.Get(build_profile)
    return self.by_platform[platform].Get(build_profile)

  def Expand(self) -> ExpandedExpectations:
    return ExpandedExpectations.FromQuery(self.Get)

  def IsUniform(self) -> bool:
    return self.uniform is not None

  def IsDefault(self) -> bool:
    if self.uniform is None or self.uniform.uniform is None:
      return False
    e = self.uniform.uniform
    return e == Expectation.Default(e.outcome_type)

  def Size(self) -> int:
    """Returns the number of Expectations stored in this encoding."""
    if self.uniform is not None:
      return 1 if self.uniform.IsUniform() else len(BuildProfile)
    return sum(1 if p.IsUniform() else len(BuildProfile)
               for p in self.by_platform.values())

  def __eq__(self, other) -> bool:
    return (isinstance(other, NormalizedExpectations)
            and self.uniform == other.uniform
            and self.by_platform == other.by_platform)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    if self.uniform is not None:
      return 'NormalizedExpectations(%r)' % self.uniform
    return 'NormalizedExpectations(%s)' % ', '.join(
        '%s: %r' % (p.value, pe) for p, pe in self.by_platform.items())


class ReportedOutcomes:
  """Outcomes observed in execution reports, accumulated per configuration.

  Unlike ExpandedExpectations, configurations without any observation are
  absent rather than defaulted.
  """

  def __init__(self, outcome_type: OutcomeType):
    self._outcome_type = outcome_type
    self._expectations_by_config = {}

  @property
  def outcome_type(self) -> OutcomeType:
    return self._outcome_type

  def Accumulate(self, platform: Platform, build_profile: BuildProfile,
                 outcome: Outcome) -> None:
    """Adds |outcome| to the observations for the given configuration."""
    config = (platform, build_profile)
    existing = self._expectations_by_config.get(config)
    if existing is None:
      self._expectations_by_config[config] = Expectation.Permanent(outcome)
    else:
      self._expectations_by_config[config] = existing | outcome

  def Get(self, platform: Platform,
          build_profile: BuildProfile) -> Optional[Expectation]:
    return self._expectations_by_config.get((platform, build_profile))

  def IsEmpty(self) -> bool:
    return not self._expectations_by_config

  def ToExpanded(self) -> ExpandedExpectations:
    """Returns observations with unobserved configurations defaulted."""
    default = Expectation.Default(self._outcome_type)
    return ExpandedExpectations.FromQuery(
        lambda p, bp: self.Get(p, bp) or default)

  def __eq__(self, other) -> bool:
    return (isinstance(other, ReportedOutcomes)
            and self._outcome_type is other._outcome_type
            and self._expectations_by_config == other._expectations_by_config)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    return 'ReportedOutcomes(%s)' % ', '.join(
        '%s/%s: %s' % (p.value, bp.value, e)
        for (p, bp), e in sorted(self._expectations_by_config.items()))


class TestProps:
  """Properties of a test or subtest section in a metadata file."""

  def __init__(self,
               expectations: Optional[NormalizedExpectations] = None,
               is_disabled: bool = False):
    self.expectations = expectations
    self.is_disabled = is_disabled

  def __eq__(self, other) -> bool:
    return (isinstance(other, TestProps)
            and self.expectations == other.expectations
            and self.is_disabled == other.is_disabled)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    return 'TestProps(expectations=%r, is_disabled=%r)' % (self.expectations,
                                                          self.is_disabled)


class MetadataTest:
  """A test section of a metadata file along with its subtest sections."""

  def __init__(self,
               properties: Optional[TestProps] = None,
               subtests: Optional[Dict[str, TestProps]] = None):
    self.properties = properties or TestProps()
    self.subtests = subtests or {}

  def __eq__(self, other) -> bool:
    return (isinstance(other, MetadataTest)
            and self.properties == other.properties
            and self.subtests == other.subtests)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    return 'MetadataTest(%r, %r)' % (self.properties, self.subtests)


class MetadataFile:
  """A parsed metadata file.

  |properties| holds file-level (key, value) lines verbatim, |tests| maps test
  section names to their contents.
  """

  def __init__(self,
               properties: Optional[List[Tuple[str, str]]] = None,
               tests: Optional[Dict[str, MetadataTest]] = None):
    self.properties = properties or []
    self.tests = tests or {}

  def __eq__(self, other) -> bool:
    return (isinstance(other, MetadataFile)
            and self.properties == other.properties
            and self.tests == other.tests)

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __repr__(self) -> str:
    return 'MetadataFile(%r, %r)' % (self.properties, self.tests)


class SubtestExecutionEntry(NamedTuple):
  name: str
  outcome: outcomes_module.SubtestOutcome


class TestExecutionEntry(NamedTuple):
  test_name: str
  outcome: outcomes_module.TestOutcome
  subtests: List[SubtestExecutionEntry]


class ExecutionReport(NamedTuple):
  platform: Platform
  build_profile: BuildProfile
  entries: List[TestExecutionEntry]
