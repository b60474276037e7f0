"""Boto3 client factory with timeout and retry configuration."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 30
DEFAULT_MAX_ATTEMPTS = 3


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: float = DEFAULT_READ_TIMEOUT,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Any:
    """Create a boto3 client bounded by per-call timeouts.

    Every provider call made through the returned client blocks at most
    ``connect_timeout + read_timeout`` seconds per attempt.

    Args:
        service_name: AWS service name (e.g., "elbv2", "ec2")
        region_name: AWS region (optional, falls back to profile/environment)
        profile_name: AWS profile name (optional)
        connect_timeout: Socket connect timeout in seconds
        read_timeout: Socket read timeout in seconds
        max_attempts: Total attempts including botocore's own retries

    Returns:
        Configured boto3 client
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)
    boto_config = BotoConfig(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "standard"},
    )
    logger.debug(f"Creating {service_name} client (region={region_name}, profile={profile_name})")
    return session.client(service_name, config=boto_config)
