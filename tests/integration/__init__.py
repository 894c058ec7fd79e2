"""Integration tests for cross-locale page sync.

These tests drive PageService end to end over both persistence gateways:
edits in one locale, propagation to the others, version conflicts between
concurrent editors, and publishing. No external services are used; the
translator is a deterministic fake.

Run only this suite with:
    pytest tests/integration -m integration
"""
