"""Load balancer teardown and recreation verifier."""

__version__ = "0.1.0"
