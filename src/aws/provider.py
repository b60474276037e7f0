"""Load balancer provider adapter over boto3.

Wraps the ELBv2 and EC2 calls the teardown needs and translates botocore
errors into ``ProviderError`` / ``ResourceNotFoundError`` so callers can tell
"already gone" apart from real failures.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from src.aws.client import create_boto_client
from src.models.resources import ListenerRef, LoadBalancerRef, TargetGroupRef

logger = logging.getLogger(__name__)

# Error codes meaning the resource no longer exists
NOT_FOUND_CODES = frozenset(
    {
        "LoadBalancerNotFound",
        "ListenerNotFound",
        "TargetGroupNotFound",
        "InvalidGroup.NotFound",
        "InvalidGroupId.NotFound",
        "InvalidPermission.NotFound",
    }
)


class ProviderError(Exception):
    """A provider call failed.

    Attributes:
        code: Provider error code ("Unknown" when not a service error)
        resource_id: Resource the call targeted
    """

    def __init__(self, message: str, code: str = "Unknown", resource_id: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.resource_id = resource_id


class ResourceNotFoundError(ProviderError):
    """The provider reports the resource as absent."""


def _translate(error: Exception, action: str, resource_id: str) -> ProviderError:
    """Map a botocore exception to a provider error."""
    if isinstance(error, ClientError):
        error_code = error.response.get("Error", {}).get("Code", "Unknown")
        error_message = error.response.get("Error", {}).get("Message", str(error))
        if error_code in NOT_FOUND_CODES:
            return ResourceNotFoundError(f"{resource_id} not found: {error_message}", error_code, resource_id)
        return ProviderError(f"{action} {resource_id} failed: {error_code} - {error_message}", error_code, resource_id)
    return ProviderError(f"{action} {resource_id} failed: {error}", "Unknown", resource_id)


class LoadBalancerProvider:
    """ELBv2/EC2 operations used by the teardown and recreation check.

    Every call is live: nothing is cached between calls.
    """

    def __init__(
        self,
        aws_profile: Optional[str] = None,
        region: Optional[str] = None,
        elbv2_client: Any = None,
        ec2_client: Any = None,
        client_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize provider.

        Args:
            aws_profile: AWS profile name (optional)
            region: AWS region (optional)
            elbv2_client: Pre-built ELBv2 client (optional, created lazily otherwise)
            ec2_client: Pre-built EC2 client (optional, created lazily otherwise)
            client_options: Extra keyword arguments for ``create_boto_client``
        """
        self.aws_profile = aws_profile
        self.region = region
        self._elbv2 = elbv2_client
        self._ec2 = ec2_client
        self._client_options = client_options or {}

    @property
    def elbv2(self) -> Any:
        if self._elbv2 is None:
            self._elbv2 = create_boto_client(
                service_name="elbv2",
                region_name=self.region,
                profile_name=self.aws_profile,
                **self._client_options,
            )
        return self._elbv2

    @property
    def ec2(self) -> Any:
        if self._ec2 is None:
            self._ec2 = create_boto_client(
                service_name="ec2",
                region_name=self.region,
                profile_name=self.aws_profile,
                **self._client_options,
            )
        return self._ec2

    def describe_load_balancer(self, name: str) -> Optional[LoadBalancerRef]:
        """Look up a load balancer by name.

        Returns:
            LoadBalancerRef with ARN resolved, or None if the load balancer does not exist

        Raises:
            ProviderError: On any failure other than not-found
        """
        try:
            response = self.elbv2.describe_load_balancers(Names=[name])
        except (ClientError, BotoCoreError) as e:
            error = _translate(e, "DescribeLoadBalancers", name)
            if isinstance(error, ResourceNotFoundError):
                return None
            raise error from e

        load_balancers = response.get("LoadBalancers", [])
        if not load_balancers:
            return None

        lb = load_balancers[0]
        return LoadBalancerRef(
            name=lb.get("LoadBalancerName", name),
            arn=lb["LoadBalancerArn"],
            dns_name=lb.get("DNSName"),
            security_group_ids=tuple(lb.get("SecurityGroups", [])),
        )

    def describe_listeners(self, load_balancer_arn: str) -> List[ListenerRef]:
        """List all listeners of a load balancer.

        Raises:
            ResourceNotFoundError: If the load balancer no longer exists
            ProviderError: On any other failure
        """
        listeners: List[ListenerRef] = []
        try:
            paginator = self.elbv2.get_paginator("describe_listeners")
            for page in paginator.paginate(LoadBalancerArn=load_balancer_arn):
                for listener in page.get("Listeners", []):
                    listeners.append(
                        ListenerRef(
                            arn=listener["ListenerArn"],
                            load_balancer_arn=listener.get("LoadBalancerArn", load_balancer_arn),
                            port=listener.get("Port"),
                            protocol=listener.get("Protocol"),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DescribeListeners", load_balancer_arn) from e
        return listeners

    def delete_listener(self, listener_arn: str) -> None:
        try:
            self.elbv2.delete_listener(ListenerArn=listener_arn)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DeleteListener", listener_arn) from e

    def describe_target_groups(self, load_balancer_arn: str) -> List[TargetGroupRef]:
        """List target groups associated with a load balancer.

        Raises:
            ResourceNotFoundError: If the load balancer no longer exists
            ProviderError: On any other failure
        """
        target_groups: List[TargetGroupRef] = []
        try:
            paginator = self.elbv2.get_paginator("describe_target_groups")
            for page in paginator.paginate(LoadBalancerArn=load_balancer_arn):
                for tg in page.get("TargetGroups", []):
                    target_groups.append(TargetGroupRef(arn=tg["TargetGroupArn"], name=tg.get("TargetGroupName")))
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DescribeTargetGroups", load_balancer_arn) from e
        return target_groups

    def delete_target_group(self, target_group_arn: str) -> None:
        try:
            self.elbv2.delete_target_group(TargetGroupArn=target_group_arn)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DeleteTargetGroup", target_group_arn) from e

    def delete_security_group(self, group_id: str) -> None:
        try:
            self.ec2.delete_security_group(GroupId=group_id)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DeleteSecurityGroup", group_id) from e

    def delete_load_balancer(self, load_balancer_arn: str) -> None:
        try:
            self.elbv2.delete_load_balancer(LoadBalancerArn=load_balancer_arn)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DeleteLoadBalancer", load_balancer_arn) from e

    def find_security_group_references(self, group_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Find ingress rules in other security groups that reference ``group_ids``.

        Returns:
            Mapping of referencing group ID to the ingress permissions that
            point at one of ``group_ids``
        """
        if not group_ids:
            return {}

        targets = set(group_ids)
        references: Dict[str, List[Dict[str, Any]]] = {}
        try:
            paginator = self.ec2.get_paginator("describe_security_groups")
            pages = paginator.paginate(Filters=[{"Name": "ip-permission.group-id", "Values": sorted(targets)}])
            for page in pages:
                for group in page.get("SecurityGroups", []):
                    group_id = group["GroupId"]
                    if group_id in targets:
                        continue
                    for permission in group.get("IpPermissions", []):
                        pairs = [p for p in permission.get("UserIdGroupPairs", []) if p.get("GroupId") in targets]
                        if not pairs:
                            continue
                        rule = {k: v for k, v in permission.items() if k in ("IpProtocol", "FromPort", "ToPort")}
                        rule["UserIdGroupPairs"] = [{"GroupId": p["GroupId"]} for p in pairs]
                        references.setdefault(group_id, []).append(rule)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "DescribeSecurityGroups", ",".join(sorted(targets))) from e
        return references

    def revoke_ingress(self, group_id: str, ip_permissions: List[Dict[str, Any]]) -> None:
        try:
            self.ec2.revoke_security_group_ingress(GroupId=group_id, IpPermissions=ip_permissions)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "RevokeSecurityGroupIngress", group_id) from e
