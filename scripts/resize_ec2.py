import json
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from botocore.exceptions import BotoCoreError, ClientError

import console
from ec2_instances import (
    InstanceState,
    fetch_instance_details,
    instance_type_offered,
    modify_instance_type,
    start_and_wait,
    stop_and_wait,
)
from errors import InvalidInput, PreflightRejected, ReconcileError, TypeUnavailableInRegion


@dataclass(frozen=True)
class ReconciliationRequest:
    region: str
    instance_id: str
    target_type: str

    def validate(self):
        for field_name in ('region', 'instance_id', 'target_type'):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInput(f"'{field_name}' must be a non-empty string")


@dataclass
class ReconciliationResult:
    success: bool
    final_state: InstanceState = None
    instance_type: str = None
    actions: list = field(default_factory=list)
    error: ReconcileError = None


class InstanceReconciler:
    """
    Drives one instance to the requested type and leaves it running.

    Every mutating call is issued once; the boto3 waiters are the only polling.
    """

    def __init__(self, ec2, settings, sleep=time.sleep, preflight=False, rollback_file=None, out=None):
        self.ec2 = ec2
        self.settings = settings
        self.sleep = sleep
        self.preflight = preflight
        self.rollback_file = rollback_file
        self.out = out

    def reconcile(self, request):
        result = ReconciliationResult(success=False)
        try:
            request.validate()
            self._check_region(request)
            self._run(request, result)
        except ReconcileError as e:
            result.error = e
            return result
        result.success = True
        return result

    def _check_region(self, request):
        """The client is bound to one region; a request for another would silently act there."""
        client_region = getattr(getattr(self.ec2, 'meta', None), 'region_name', None)
        if not isinstance(client_region, str):
            client_region = self.settings.region
        if request.region != client_region or request.region != self.settings.region:
            raise InvalidInput(
                f"Request region {request.region} does not match the configured region {self.settings.region}",
                instance_id=request.instance_id,
                region=request.region,
            )

    def _run(self, request, result):
        instance_id, region, target_type = request.instance_id, request.region, request.target_type
        console.header(f"Processing Instance: {instance_id}", stream=self.out)

        instance = fetch_instance_details(self.ec2, instance_id, region)
        result.final_state = instance.state
        result.instance_type = instance.instance_type
        self._describe(instance, target_type)

        needs_modify = instance.instance_type != target_type
        if needs_modify:
            console.warn(f"Conversion needed: {instance.instance_type} -> {target_type}", stream=self.out)
            self._check_availability(region, target_type, result)
            if self.preflight:
                self._dry_run_modify(instance_id, region, target_type)
        else:
            console.info(f"Instance is already {target_type}. No conversion needed.", stream=self.out)
            console.info("Restarting instance...", stream=self.out)

        # Any state other than stopped goes through stop; transient states are left to EC2 to serialize
        if instance.state != InstanceState.STOPPED:
            console.info(f"Stopping instance {instance_id}...", stream=self.out)
            result.actions.append('stop')
            stop_and_wait(self.ec2, instance_id, region, self.settings.waiter_config)
            result.actions.append('wait-stopped')
            result.final_state = InstanceState.STOPPED
            console.success("Instance stopped successfully", stream=self.out)
            settle = True
        else:
            settle = False

        if needs_modify:
            self._record_rollback(instance, target_type, region)
            console.info(f"Modifying instance type to {target_type}...", stream=self.out)
            result.actions.append('modify')
            modify_instance_type(self.ec2, instance_id, region, target_type)
            result.instance_type = target_type
            console.success(f"Instance type modified to {target_type} successfully", stream=self.out)
            settle = True

        if settle:
            self.sleep(self.settings.settle_seconds)

        console.info(f"Starting instance {instance_id}...", stream=self.out)
        result.actions.append('start')
        start_and_wait(self.ec2, instance_id, region, self.settings.waiter_config)
        result.actions.append('wait-running')
        result.final_state = InstanceState.RUNNING
        console.success("Instance started successfully", stream=self.out)

    def _describe(self, instance, target_type):
        print(f"Instance Name:          {instance.name}", file=self.out)
        print(f"Current Instance Type:  {instance.instance_type}", file=self.out)
        print(f"Current State:          {instance.state.value}", file=self.out)
        print(f"Target Instance Type:   {target_type}", file=self.out)
        print(file=self.out)

    def _check_availability(self, region, target_type, result):
        console.info(f"Checking if instance type '{target_type}' is available in region {region}...", stream=self.out)
        result.actions.append('availability-check')
        if not instance_type_offered(self.ec2, region, target_type):
            raise TypeUnavailableInRegion(
                f"Instance type '{target_type}' is NOT available in region {region}",
                operation='describe-instance-type-offerings',
                region=region,
                detail=(
                    f"aws ec2 describe-instance-type-offerings --region {region} "
                    f"--filters \"Name=instance-type,Values={target_type.split('.')[0]}.*\""
                ),
            )
        console.success(f"Instance type '{target_type}' is available in region {region}", stream=self.out)

    def _dry_run_modify(self, instance_id, region, target_type):
        try:
            self.ec2.modify_instance_attribute(
                InstanceId=instance_id,
                InstanceType={'Value': target_type},
                DryRun=True
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') == 'DryRunOperation':
                console.success("Dry-run passed. Proceeding with resize...", stream=self.out)
                return
            raise PreflightRejected(
                "Dry-run failed",
                operation='modify-instance-attribute --dry-run',
                instance_id=instance_id,
                region=region,
                detail=str(e),
            )
        except BotoCoreError as e:
            raise PreflightRejected(
                "Dry-run failed",
                operation='modify-instance-attribute --dry-run',
                instance_id=instance_id,
                region=region,
                detail=str(e),
            )

    def _record_rollback(self, instance, target_type, region):
        if not self.rollback_file:
            return
        record = {
            'instance_id': instance.instance_id,
            'region': region,
            'previous_instance_type': instance.instance_type,
            'target_instance_type': target_type,
            'recorded_at': datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }
        with open(self.rollback_file, 'w') as f:
            json.dump(record, f, indent=2)
        console.info(f"Rollback data saved to {self.rollback_file}", stream=self.out)


def resize_instance(ec2, settings, instance_id, preflight=False, rollback_file=None, sleep=None):
    request = ReconciliationRequest(
        region=settings.region,
        instance_id=instance_id,
        target_type=settings.target_type,
    )
    reconciler = InstanceReconciler(ec2, settings, sleep=sleep or time.sleep, preflight=preflight, rollback_file=rollback_file)
    return reconciler.reconcile(request)


def load_request_file(path):
    """Reads an instance_id / region / desired_instance_type JSON request."""
    try:
        with open(path) as f:
            data = json.load(f)
        request = ReconciliationRequest(
            region=data['region'],
            instance_id=data['instance_id'],
            target_type=data['desired_instance_type'],
        )
    except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise InvalidInput(f"Error loading input file {path}: {e}")
    request.validate()
    return request


if __name__ == "__main__":
    from convert_ec2_instance import main
    sys.exit(main(['--input', sys.argv[1] if len(sys.argv) > 1 else 'input.json']))
