from dataclasses import dataclass
from enum import Enum

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from errors import (
    InvalidInput,
    ModifyRejected,
    NotFoundOrForbidden,
    RegionQueryFailed,
    StartRequestRejected,
    StartTimeout,
    StopRequestRejected,
    StopTimeout,
    TypeUnavailableInRegion,
)

NO_NAME = 'N/A'


class InstanceState(Enum):
    PENDING = 'pending'
    RUNNING = 'running'
    STOPPING = 'stopping'
    STOPPED = 'stopped'
    SHUTTING_DOWN = 'shutting-down'
    TERMINATED = 'terminated'

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            raise InvalidInput(f"Unknown instance state '{value}'")


@dataclass(frozen=True)
class InstanceDescriptor:
    instance_id: str
    name: str
    instance_type: str
    state: InstanceState

    @classmethod
    def from_api(cls, instance):
        """Builds a descriptor from one describe_instances instance record."""
        name = NO_NAME
        for tag in instance.get('Tags') or []:
            if tag.get('Key') == 'Name' and tag.get('Value'):
                name = tag['Value']
                break
        return cls(
            instance_id=instance['InstanceId'],
            name=name,
            instance_type=instance['InstanceType'],
            state=InstanceState.parse(instance['State']['Name']),
        )


def fetch_instance_details(ec2, instance_id, region):
    """Fetches the current name, type and power state of one instance."""
    try:
        reservations = ec2.describe_instances(InstanceIds=[instance_id])['Reservations']
    except (ClientError, BotoCoreError) as e:
        raise NotFoundOrForbidden(
            f"Instance {instance_id} not found or you don't have permission to access it",
            operation='describe-instances',
            instance_id=instance_id,
            region=region,
            detail=str(e),
        )
    if not reservations or not reservations[0].get('Instances'):
        raise NotFoundOrForbidden(
            f"Instance {instance_id} not found or you don't have permission to access it",
            operation='describe-instances',
            instance_id=instance_id,
            region=region,
            detail='empty reservation list',
        )
    return InstanceDescriptor.from_api(reservations[0]['Instances'][0])


def describe_region_instances(ec2, region):
    instances = []
    try:
        paginator = ec2.get_paginator('describe_instances')
        for page in paginator.paginate():
            for reservation in page.get('Reservations', []):
                for instance in reservation.get('Instances', []):
                    instances.append(InstanceDescriptor.from_api(instance))
    except (ClientError, BotoCoreError) as e:
        raise RegionQueryFailed(
            f"Failed to list instances in region {region}",
            operation='describe-instances',
            region=region,
            detail=str(e),
        )
    return instances


def instance_type_offered(ec2, region, instance_type):
    """True when the region offers the instance type at all."""
    try:
        response = ec2.describe_instance_type_offerings(
            LocationType='region',
            Filters=[{'Name': 'instance-type', 'Values': [instance_type]}],
        )
    except (ClientError, BotoCoreError) as e:
        raise TypeUnavailableInRegion(
            "Failed to check instance type availability",
            operation='describe-instance-type-offerings',
            region=region,
            detail=str(e),
        )
    offerings = response.get('InstanceTypeOfferings') or []
    return any(o.get('InstanceType') == instance_type for o in offerings)


def stop_and_wait(ec2, instance_id, region, waiter_config):
    try:
        ec2.stop_instances(InstanceIds=[instance_id])
    except (ClientError, BotoCoreError) as e:
        raise StopRequestRejected(
            "Failed to stop instance",
            operation='stop-instances',
            instance_id=instance_id,
            region=region,
            detail=str(e),
        )
    try:
        ec2.get_waiter('instance_stopped').wait(InstanceIds=[instance_id], WaiterConfig=waiter_config)
    except WaiterError as e:
        raise StopTimeout(
            "Timeout waiting for instance to stop",
            operation='wait instance-stopped',
            instance_id=instance_id,
            region=region,
            detail=str(e),
        )


def start_and_wait(ec2, instance_id, region, waiter_config):
    try:
        ec2.start_instances(InstanceIds=[instance_id])
    except (ClientError, BotoCoreError) as e:
        raise StartRequestRejected(
            "Failed to start instance",
            operation='start-instances',
            instance_id=instance_id,
            region=region,
            detail=str(e),
        )
    try:
        ec2.get_waiter('instance_running').wait(InstanceIds=[instance_id], WaiterConfig=waiter_config)
    except WaiterError as e:
        raise StartTimeout(
            "Timeout waiting for instance to start",
            operation='wait instance-running',
            instance_id=instance_id,
            region=region,
            detail=str(e),
        )


def modify_instance_type(ec2, instance_id, region, new_type):
    try:
        ec2.modify_instance_attribute(
            InstanceId=instance_id,
            InstanceType={'Value': new_type}
        )
    except (ClientError, BotoCoreError) as e:
        raise ModifyRejected(
            f"Failed to modify instance type for {instance_id} to {new_type}",
            operation='modify-instance-attribute',
            instance_id=instance_id,
            region=region,
            detail=str(e),
        )
