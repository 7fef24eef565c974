# MedVault Test Suite
"""
Test suite including:
- Unit tests (keys, envelopes, symmetric schemes, payloads, config)
- Storage tests against a fake IPFS node (httpx.MockTransport)
- Security tests (tampering, wrong keys, invalid inputs)

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
