"""
ZK VIP Test Suite
=================

Test organization:
- tests/unit/                 - Unit tests (no network, mock proof system)
- tests/services/admission/   - HTTP tests against the admission service

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=zkvip              # With coverage
"""
