# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Integration with the rclone transfer tool.

This package classifies rclone exit codes, runs the short rclone commands used
for validation, and supervises the long-running `rclone sync` process.
"""
