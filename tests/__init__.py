# CredVault Test Suite
"""
Test suite including:
- Unit tests for the credential primitives
- Record and store integration tests
- Security tests (invalid inputs)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
