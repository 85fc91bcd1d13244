"""
Infrastructure Layer Package

This package contains the MongoDB-backed implementation of the optional
analysis cache.
"""
