# Copyright 2024 The Chromium Authors
# Use of this source code is governed by a BSD-style license that can be
# found in the LICENSE file.
"""Constants shared between the WebGPU CTS metadata modules."""

# Metadata roots, relative to the root of a checkout. Order matters when
# matching: the Firefox private root extends the public one, so it must be
# checked first.
SCOPE_DIR_FX_PRIVATE = 'testing/web-platform/mozilla'
SCOPE_DIR_FX_PUBLIC = 'testing/web-platform'
SCOPE_DIR_SERVO_PUBLIC = 'tests/wpt/webgpu'

METADATA_DIR_NAME = 'meta'
METADATA_FILE_SUFFIX = '.ini'

# Report test names are URL paths, so only forward slashes are separators.
DISALLOWED_PATH_SEPARATOR = '\\'
VARIANT_START = '?'

# Tests from the CTS share a single harness file and are told apart by a query
# string of this form.
CTS_HARNESS_FILE_NAME = 'cts.https.html'
CTS_QUERY_PREFIX = '?q='
CTS_QUERY_SUITE_PREFIX = 'webgpu:'

# Directories holding WebGPU CTS metadata, relative to the checkout root.
FX_METADATA_DIR = SCOPE_DIR_FX_PRIVATE + '/meta/webgpu'
SERVO_METADATA_DIR = SCOPE_DIR_SERVO_PUBLIC + '/meta/webgpu'
METADATA_GLOB = '**/*.ini'
# Directory-level metadata is not associated with any single test.
DIR_METADATA_FILE_NAME = '__dir__.ini'
