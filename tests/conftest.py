"""Pytest configuration and fixtures for avbuild tests.

avbuild.output keeps module-level stream references. Tests point those at
in-memory buffers so console output never lands on a stream pytest has
already closed (seen on Python 3.13 during teardown).
"""

import io
import sys
import warnings

import pytest

from avbuild import output

# Suppress ResourceWarnings from file cleanup in Python 3.13
if sys.version_info >= (3, 13):
    warnings.filterwarnings("ignore", category=ResourceWarning)


@pytest.fixture(autouse=True)
def console():
    """Capture avbuild console output and directives for the duration of a test."""
    log_buffer = io.StringIO()
    directive_buffer = io.StringIO()
    output.init_timer(log_buffer)
    output.set_directive_stream(directive_buffer)
    output.set_verbose(True)
    yield log_buffer, directive_buffer
    output.init_timer(sys.__stdout__)
    output.set_directive_stream(sys.__stdout__)


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr are always restored after each test."""
    yield

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__
