# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Argument parsing-related code for the WebGPU CTS metadata tools."""

import argparse
import logging
import os
from typing import List, Optional

from webgpu_cts_metadata import paths
from webgpu_cts_metadata import reconciliation

# Names accepted by --preset, including the aliases named after the situations
# they are meant for.
PRESETS = {
    'reset-contradictory': reconciliation.Policy.RESET_CONTRADICTORY,
    'new-fx': reconciliation.Policy.RESET_CONTRADICTORY,
    'merge': reconciliation.Policy.MERGE,
    'same-fx': reconciliation.Policy.MERGE,
    'reset-all': reconciliation.Policy.RESET_ALL,
}

ON_ZERO_ITEM_CHOICES = ('show', 'hide')

# Checkout roots are recognized by their version control directory.
CHECKOUT_MARKERS = ('.hg', '.git')


def AddCommonArguments(parser: argparse.ArgumentParser) -> None:
  """Adds arguments that are common to all subcommands.

  Args:
    parser: An argparse.ArgumentParser instance to add arguments to.
  """
  parser.add_argument('--checkout',
                      '--gecko-checkout',
                      dest='checkout',
                      help='The root of the source checkout to operate on. '
                      'If not specified, the checkout containing the current '
                      'working directory is used.')
  parser.add_argument('--browser',
                      choices=[b.value for b in paths.Browser],
                      default=paths.Browser.FIREFOX.value,
                      help='The browser whose metadata is being processed.')
  parser.add_argument('-v',
                      '--verbose',
                      action='count',
                      default=1,
                      help='Increase logging verbosity, can be passed multiple '
                      'times.')
  parser.add_argument('-q',
                      '--quiet',
                      action='store_true',
                      default=False,
                      help='Disable logging for non-errors.')


def AddUpdateExpectedArguments(parser: argparse.ArgumentParser) -> None:
  parser.add_argument('report_paths',
                      nargs='*',
                      help='Direct paths to wptreport.json files to process.')
  parser.add_argument('--glob',
                      dest='report_globs',
                      action='append',
                      default=[],
                      metavar='REPORT_GLOB',
                      help='A glob used to find report files to process. Can '
                      'be passed multiple times. Only forward slashes are '
                      'path separators.')
  parser.add_argument('--preset',
                      choices=sorted(PRESETS),
                      default='reset-contradictory',
                      help='How to resolve differences between current '
                      'metadata and processed reports. "new-fx" is an alias '
                      'of "reset-contradictory", meant for the first reports '
                      'from a new build. "same-fx" is an alias of "merge", '
                      'meant for further reports from the same build.')
  parser.add_argument('--jobs',
                      '-j',
                      type=int,
                      help='The number of threads to read reports with. '
                      'Defaults to the number of CPUs.')


def AddTriageArguments(parser: argparse.ArgumentParser) -> None:
  parser.add_argument('--on-zero-item',
                      choices=ON_ZERO_ITEM_CHOICES,
                      default='hide',
                      help='Whether to show summary items with a count of '
                      'zero.')


def ParseInterleavedArgs(parser: argparse.ArgumentParser,
                         argv: Optional[List[str]] = None
                         ) -> argparse.Namespace:
  """Parses |argv|, allowing report paths to come after options.

  argparse only fills a '*' positional from the arguments before the first
  option, so any later report paths are left over and appended here.

  Args:
    parser: The argparse.ArgumentParser to parse with.
    argv: The arguments to parse. Defaults to sys.argv.

  Returns:
    An argparse.Namespace.
  """
  args, extra = parser.parse_known_args(argv)
  if extra:
    if (not hasattr(args, 'report_paths')
        or any(a.startswith('-') for a in extra)):
      parser.error('unrecognized arguments: %s' % ' '.join(extra))
    args.report_paths = list(args.report_paths or []) + extra
  return args


def PerformCommonPostParseSetup(args: argparse.Namespace) -> None:
  """Helper function to perform all common post-parse setup.

  Args:
    args: Parsed arguments from an argparse.ArgumentParser.
  """
  SetLoggingVerbosity(args)
  SetCheckout(args)
  args.browser = paths.Browser(args.browser)
  if hasattr(args, 'preset'):
    args.policy = PRESETS[args.preset]


def SetLoggingVerbosity(args: argparse.Namespace) -> None:
  """Sets logging verbosity based on parsed arguments.

  Args:
    args: Parsed arguments from an argparse.ArgumentParser.
  """
  if args.quiet:
    args.verbose = -1
  verbosity_level = args.verbose
  if verbosity_level == -1:
    level = logging.ERROR
  elif verbosity_level == 0:
    level = logging.WARNING
  elif verbosity_level == 1:
    level = logging.INFO
  else:
    level = logging.DEBUG
  logging.getLogger().setLevel(level)


def FindCheckout(start_dir: str) -> Optional[str]:
  """Returns the closest directory at or above |start_dir| with a checkout."""
  current = os.path.abspath(start_dir)
  while True:
    for marker in CHECKOUT_MARKERS:
      if os.path.isdir(os.path.join(current, marker)):
        return current
    parent = os.path.dirname(current)
    if parent == current:
      return None
    current = parent


def SetCheckout(args: argparse.Namespace) -> None:
  """Sets the checkout based on parsed arguments.

  Args:
    args: Parsed arguments from an argparse.ArgumentParser.
  """
  if args.checkout:
    args.checkout = os.path.abspath(args.checkout)
    return
  logging.debug('Searching for a checkout containing %s', os.getcwd())
  args.checkout = FindCheckout(os.getcwd())
  if args.checkout is None:
    raise RuntimeError(
        'Unable to find a checkout containing the current working directory, '
        'please specify one with --checkout')
  logging.info('Detected checkout at %s', args.checkout)
