"""Test fixtures for page-sync tests.

This module groups the builders used across unit and integration tests:
- Wire-format page trees in a source locale and their localized copies
- Fake translators (prefixing, failing)
"""
