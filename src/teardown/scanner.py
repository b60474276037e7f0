"""Orphan security group scanner.

Collects the security groups attached to a load balancer so they can be
cleaned up once the load balancer is gone, and strips ingress rules in other
groups that still point at them. A group referenced by another group's rule
cannot be deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from src.aws.provider import LoadBalancerProvider, ProviderError, ResourceNotFoundError
from src.models.resources import LoadBalancerRef, SecurityGroupRef

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Orphans found and references revoked.

    Attributes:
        orphans: Security groups attached to the load balancer
        revoked: Referencing groups whose rules were revoked
        errors: Revocations or lookups that failed
    """

    orphans: List[SecurityGroupRef] = field(default_factory=list)
    revoked: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def orphan_ids(self) -> List[str]:
        return [sg.id for sg in self.orphans]


class OrphanSecurityGroupScanner:
    """Find a load balancer's security groups and drop references to them."""

    def __init__(self, provider: LoadBalancerProvider) -> None:
        self.provider = provider

    def scan(self, load_balancer: LoadBalancerRef, revoke_references: bool = True) -> ScanResult:
        result = ScanResult(orphans=[SecurityGroupRef(id=sg) for sg in load_balancer.security_group_ids])
        if not result.orphans:
            logger.info(f"Load balancer {load_balancer.name} has no security groups")
            return result

        logger.info(f"Load balancer {load_balancer.name} security groups: {', '.join(result.orphan_ids)}")
        if not revoke_references:
            return result

        try:
            references = self.provider.find_security_group_references(result.orphan_ids)
        except ProviderError as e:
            logger.warning(f"Could not look up references to {load_balancer.name} security groups: {e}")
            result.errors.append(str(e))
            return result

        for group_id, permissions in references.items():
            try:
                self.provider.revoke_ingress(group_id, permissions)
            except ResourceNotFoundError:
                logger.debug(f"Rules in {group_id} already gone")
                continue
            except ProviderError as e:
                logger.warning(f"Failed to revoke references in {group_id}: {e}")
                result.errors.append(str(e))
                continue
            logger.info(f"Revoked {len(permissions)} rule(s) in {group_id} referencing orphan groups")
            result.revoked.append(group_id)

        return result
