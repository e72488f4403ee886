"""
Integration tests for the load engine.

Tests start a threaded local target server and demonstrate:
- Throughput and timing checks with jitter tolerance
- Failure-path accounting (500s, timeouts, refused connections)
- Control API status-code contracts
"""
