"""
Test suite for the load-generation engine.

This package contains:
- unit/: engine components driven with fake HTTP sessions
- integration/: real load runs and the control API against a local target
"""
