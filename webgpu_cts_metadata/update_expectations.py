#!/usr/bin/env python3
# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Script for maintaining WebGPU CTS expectation metadata.

Example usage, after a first complete set of CI runs with a new build:

update_expectations.py update-expected --preset=new-fx \
  --glob 'reports/**/wptreport.json'

As further intermittent outcomes are discovered in CI runs of the same build,
merge them in with:

update_expectations.py update-expected --preset=same-fx \
  path/to/wptreport.json

Processed reports do not need to be kept around afterwards. Other subcommands:

  fixup: Re-emit all metadata in normalized form.
  triage: Print a summary of expectations, ordered by priority.
"""

import argparse
import glob
import logging
import os
import sys
from typing import Dict, List, Optional

from webgpu_cts_metadata import argument_parsing
from webgpu_cts_metadata import constants
from webgpu_cts_metadata import data_types
from webgpu_cts_metadata import diagnostics as diagnostics_module
from webgpu_cts_metadata import metadata
from webgpu_cts_metadata import paths
from webgpu_cts_metadata import reconciliation
from webgpu_cts_metadata import reports
from webgpu_cts_metadata import triage

METADATA_DIRS = {
    paths.Browser.FIREFOX: constants.FX_METADATA_DIR,
    paths.Browser.SERVO: constants.SERVO_METADATA_DIR,
}


def ParseArgs(argv: Optional[List[str]] = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(
      description='Script for maintaining WebGPU CTS expectation metadata.')
  argument_parsing.AddCommonArguments(parser)
  subparsers = parser.add_subparsers(dest='subcommand', required=True)

  update_parser = subparsers.add_parser(
      'update-expected',
      aliases=['process-reports'],
      help='Adjust expectations in metadata using wptreport.json reports.')
  argument_parsing.AddUpdateExpectedArguments(update_parser)
  update_parser.set_defaults(func=UpdateExpected)

  fixup_parser = subparsers.add_parser(
      'fixup',
      aliases=['fmt'],
      help='Parse metadata, apply automated fixups and re-emit it in '
      'normalized form.')
  fixup_parser.set_defaults(func=Fixup)

  triage_parser = subparsers.add_parser(
      'triage', help='Print a prioritized summary of expectations.')
  argument_parsing.AddTriageArguments(triage_parser)
  triage_parser.set_defaults(func=Triage)

  args = argument_parsing.ParseInterleavedArgs(parser, argv)
  argument_parsing.PerformCommonPostParseSetup(args)
  return args


def ToRelativePath(checkout: str, path: str) -> str:
  return os.path.relpath(path, checkout).replace(os.sep, '/')


def ReadMetadataFiles(checkout: str, browser: paths.Browser) -> Dict[str, str]:
  """Reads every metadata file for |browser|.

  Returns:
    A dict mapping '/'-separated paths relative to |checkout| to file
    contents, sorted by path.

  Raises:
    OSError: A file could not be read.
  """
  metadata_dir = os.path.join(checkout, *METADATA_DIRS[browser].split('/'))
  logging.info('reading %s files at %s', constants.METADATA_GLOB, metadata_dir)
  file_paths = glob.glob(os.path.join(metadata_dir, constants.METADATA_GLOB),
                         recursive=True)
  contents_by_path = {}
  for path in sorted(file_paths):
    if os.path.basename(path) == constants.DIR_METADATA_FILE_NAME:
      continue
    logging.debug('reading from %s...', path)
    with open(path, encoding='utf-8') as infile:
      contents_by_path[ToRelativePath(checkout, path)] = infile.read()
  return contents_by_path


def LoadMetadata(checkout: str, browser: paths.Browser
                 ) -> Optional[Dict[str, data_types.MetadataFile]]:
  """Reads and parses metadata, returning None if any file was invalid."""
  logging.info('parsing metadata...')
  metadata_files, errors = metadata.ParseFiles(
      ReadMetadataFiles(checkout, browser))
  for e in errors:
    logging.error('%s', e)
  if errors:
    logging.error('found one or more failures while parsing metadata, see '
                  'above for more details')
    return None
  return metadata_files


def WriteFile(checkout: str, rel_path: str, contents: str) -> None:
  path = os.path.join(checkout, *rel_path.split('/'))
  logging.debug('writing new metadata to %s', path)
  os.makedirs(os.path.dirname(path), exist_ok=True)
  with open(path, 'w', encoding='utf-8', newline='\n') as outfile:
    outfile.write(contents)


def RemoveFile(checkout: str, rel_path: str) -> None:
  path = os.path.join(checkout, *rel_path.split('/'))
  try:
    os.remove(path)
  except FileNotFoundError:
    pass


def FindReportPaths(report_paths: List[str],
                    report_globs: List[str]) -> Optional[List[str]]:
  """Combines explicit report paths with those matched by globs.

  Returns:
    A list of report paths, or None if globs were the only source of reports
    and matched nothing.
  """
  paths_from_globs = []
  for pattern in report_globs:
    paths_from_globs.extend(sorted(glob.glob(pattern, recursive=True)))
  if report_globs and not paths_from_globs:
    if not report_paths:
      logging.error('reports were specified exclusively via glob search, but '
                    'none were found; bailing')
      return None
    logging.warning('reports were specified via path and glob search, but '
                    'none were found via glob; continuing with report paths')
  return list(report_paths) + paths_from_globs


def UpdateExpected(args: argparse.Namespace) -> int:
  exec_report_paths = FindReportPaths(args.report_paths, args.report_globs)
  if exec_report_paths is None:
    return 1
  logging.debug('working with the following WPT report files: %s',
                exec_report_paths)
  logging.info('working with %d WPT report files', len(exec_report_paths))

  metadata_files = LoadMetadata(args.checkout, args.browser)
  if metadata_files is None:
    return 1

  diagnostics = diagnostics_module.Diagnostics()
  execution_reports, had_report_errors = reports.LoadReports(
      exec_report_paths, diagnostics, args.jobs)
  if had_report_errors:
    logging.error('failed to read one or more WPT execution reports; bailing')
    return 1

  result = reconciliation.ReconcileAll(metadata_files, execution_reports,
                                       args.policy, args.browser, diagnostics)

  logging.info('outcome reconciliation complete, writing to file system...')
  found_error = result.diagnostics.HasErrors()
  for rel_path in result.removed_files:
    RemoveFile(args.checkout, rel_path)
  for rel_path, metadata_file in result.updated_files.items():
    try:
      WriteFile(args.checkout, rel_path, metadata.FormatFile(metadata_file))
    except OSError as e:
      logging.error('failed to write %s: %s', rel_path, e)
      found_error = True

  if found_error:
    logging.error('one or more errors found while reconciling, exiting with '
                  'failure; see above for more details')
    return 1
  return 0


def Fixup(args: argparse.Namespace) -> int:
  metadata_files = LoadMetadata(args.checkout, args.browser)
  if metadata_files is None:
    return 1

  logging.info('formatting metadata in-place...')
  found_error = False
  for rel_path, metadata_file in metadata_files.items():
    for test in metadata_file.tests.values():
      for subtest_properties in test.subtests.values():
        if subtest_properties.expectations is not None:
          subtest_properties.expectations = (
              reconciliation.TaintNormalizedSubtestExpectations(
                  subtest_properties.expectations))
    try:
      WriteFile(args.checkout, rel_path, metadata.FormatFile(metadata_file))
    except OSError as e:
      logging.error('failed to write %s: %s', rel_path, e)
      found_error = True

  if found_error:
    logging.error('found one or more failures while formatting metadata, see '
                  'above for more details')
    return 1
  return 0


def Triage(args: argparse.Namespace) -> int:
  metadata_files = LoadMetadata(args.checkout, args.browser)
  if metadata_files is None:
    return 1
  logging.info('finished parsing metadata files, analyzing results...')
  try:
    analysis = triage.Analyze(metadata_files)
  except paths.PathFormatError as e:
    logging.error('%s', e)
    return 1
  logging.info('finished analysis, printing to stdout...')
  print(triage.FormatReport(analysis, args.on_zero_item == 'show'))
  return 0


def main(argv: Optional[List[str]] = None) -> int:
  logging.basicConfig(format='%(levelname)s: %(message)s')
  args = ParseArgs(argv)
  return args.func(args)


if __name__ == '__main__':
  sys.exit(main())
