"""
Shared utilities for xsession: error codes, exceptions and retry helpers.
"""
