"""
Core infrastructure: configuration, errors, persistence client, rate limiting.
"""
