"""Test utilities for waypost applications.

Provides an async in-process test client and envelope assertions::

    from waypost.testing import TestClient, assert_success
"""

from waypost.testing.assertions import assert_failure, assert_header, assert_success
from waypost.testing.client import TestClient

__all__ = [
    "TestClient",
    "assert_failure",
    "assert_header",
    "assert_success",
]
