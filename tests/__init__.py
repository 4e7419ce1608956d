"""Test package marker for the imapsweep suites.

Fixtures shared by every suite live in ``tests/conftest.py``; the IMAP fakes
used by the unit suite live in ``tests/unit/fakes.py``.
"""
