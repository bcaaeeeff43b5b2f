"""
Core session model: sessions, operations and prepared statement state.
"""
