"""Data models for teardown and recreation verification."""
