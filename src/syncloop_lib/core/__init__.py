# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Core infrastructure for syncloop.

This module collects the foundational pieces used across the syncloop
codebase: configuration, error types, structured logging, and retrying.
"""
