# threema-e2e Test Suite
"""
Test suite including:
- Unit tests per module
- Wire format vectors
- Integration tests (full send/receive workflows)
- Security tests (tampering, wrong keys, invalid input)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
