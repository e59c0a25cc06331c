# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Execution of a single syncloop run.

This package holds the runtime context of an invocation, the preflight checks,
the signal handling that deals with preemption and time limits, and the
orchestrator that ties them together.
"""
