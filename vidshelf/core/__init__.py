"""
Core application modules: configuration, logging, errors and authentication.
"""
