"""Bridges to third-party libraries: PyNaCl for signatures, requests for HTTP."""
