# cc20stream Test Suite
"""
Test suite including:
- Unit tests (keys, transform, metadata, sink, adapter, source)
- Integration tests (end-to-end encrypt/decrypt through files and print())
- Security tests (tampering, truncation, misuse after close)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
