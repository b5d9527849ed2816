from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, WaiterError

from settings import Settings


def client_error(code, message, operation):
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


def waiter_error(name):
    return WaiterError(name=name, reason='Max attempts exceeded', last_response={})


def instance_record(instance_id='i-0001', instance_type='g4dn.xlarge', state='running', name='gpu-node'):
    record = {
        'InstanceId': instance_id,
        'InstanceType': instance_type,
        'State': {'Name': state},
    }
    if name is not None:
        record['Tags'] = [{'Key': 'env', 'Value': 'dev'}, {'Key': 'Name', 'Value': name}]
    return record


def make_ec2(instances=(), offered=('g6.8xlarge',)):
    ec2 = MagicMock()
    ec2.describe_instances.return_value = {
        'Reservations': [{'Instances': [record]} for record in instances]
    }
    ec2.get_paginator.return_value.paginate.return_value = [
        {'Reservations': [{'Instances': list(instances)}]}
    ]

    def offerings(**kwargs):
        wanted = kwargs['Filters'][0]['Values'][0]
        return {
            'InstanceTypeOfferings': [
                {'InstanceType': t, 'LocationType': 'region', 'Location': 'us-east-2'}
                for t in offered if t == wanted
            ]
        }

    ec2.describe_instance_type_offerings.side_effect = offerings
    return ec2


@pytest.fixture
def settings():
    return Settings(region='us-east-2', access_key_id='AKIA', secret_access_key='secret',
                    target_type='g6.8xlarge', settle_seconds=2, wait_delay=1, wait_max_attempts=3)
