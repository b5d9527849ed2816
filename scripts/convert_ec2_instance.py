#!/usr/bin/env python3
"""
Convert an EC2 instance to a target instance type and leave it running.

Lists instances in a region, lets the operator pick one, checks that the
target type is offered in the region, then stops, retypes and starts the
instance. When the instance already has the target type it is simply
restarted.

Exit Codes:
  0 success
  1 any failure (validation, authentication, AWS error, timeout, cancel)

Examples:
  convert-ec2-instance                                  # fully interactive
  convert-ec2-instance --region us-east-2 --interactive
  convert-ec2-instance --region us-east-2 --list-instances
  convert-ec2-instance --region us-east-2 --instance-id i-1234567890abcdef0
  convert-ec2-instance --input input.json --rollback-file rollback.json
"""
import argparse
import sys
from getpass import getpass

import console
from errors import InvalidInput, ReconcileError
from resize_ec2 import load_request_file, resize_instance
from select_instance import list_instances, select_instance_interactive
from settings import DEFAULT_REGION_PROMPT, DEFAULT_TARGET_TYPE, load_settings, verify_credentials

COMMON_REGIONS = [
    ('us-east-2', 'Ohio'),
    ('us-east-1', 'N. Virginia'),
    ('us-west-2', 'Oregon'),
    ('eu-west-1', 'Ireland'),
    ('ap-southeast-1', 'Singapore'),
]


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog='convert-ec2-instance',
        description="Convert an EC2 instance to a target type and restart it",
    )
    p.add_argument("--region", help="AWS region (e.g. us-east-2)")
    p.add_argument("--instance-id", help="EC2 instance ID (required unless --list-instances or --interactive)")
    p.add_argument("--access-key-id", help="AWS access key ID")
    p.add_argument("--secret-access-key", help="AWS secret access key")
    p.add_argument("--target-type", help=f"Target instance type (default: {DEFAULT_TARGET_TYPE})")
    p.add_argument("--list-instances", action="store_true", help="List all instances in the region and exit")
    p.add_argument("--interactive", action="store_true", help="Choose the instance from a list")
    p.add_argument("--input", help="JSON request file with instance_id, region and desired_instance_type")
    p.add_argument("--preflight", action="store_true", help="Dry-run the type change before stopping the instance")
    p.add_argument("--rollback-file", help="Write the previous instance type to this JSON file before modifying")
    return p.parse_args(argv)


def prompt_input(text, default=None, input_fn=input):
    suffix = f" [{default}]" if default else ""
    value = input_fn(f"{text}{suffix}: ").strip()
    return value or (default or "")


def prompt_yes_no(text, default='y', input_fn=input):
    hint = '[Y/n]' if default == 'y' else '[y/N]'
    value = input_fn(f"{text} {hint}: ").strip().lower()
    return (value or default) in ('y', 'yes')


def collect_parameters_interactively(args, input_fn=input):
    """Fills in whatever the command line left out."""
    console.header("EC2 Instance Management - Configuration")
    print("Let's gather the required information to manage your EC2 instance.")
    print()

    if not args.region:
        print("Common AWS regions:")
        for code, label in COMMON_REGIONS:
            print(f"  - {code} ({label})")
        print()
        args.region = prompt_input("Enter AWS region", DEFAULT_REGION_PROMPT, input_fn=input_fn)

    if not args.target_type:
        if not prompt_yes_no(f"Use default target instance type ({DEFAULT_TARGET_TYPE})?", 'y', input_fn=input_fn):
            args.target_type = prompt_input("Enter target instance type", DEFAULT_TARGET_TYPE, input_fn=input_fn)

    if not args.instance_id and not args.interactive:
        if prompt_yes_no("Do you want to select an instance from a list?", 'y', input_fn=input_fn):
            args.interactive = True
        else:
            args.instance_id = prompt_input("Enter EC2 Instance ID (e.g., i-1234567890abcdef0)", input_fn=input_fn)
    print()
    return args


def run(args, input_fn=input, secret_fn=getpass, client_factory=None, sleep=None):
    if args.input:
        request = load_request_file(args.input)
        args.region = args.region or request.region
        args.instance_id = args.instance_id or request.instance_id
        args.target_type = args.target_type or request.target_type

    if not args.region:
        if args.list_instances:
            raise InvalidInput("--region is required with --list-instances")
        collect_parameters_interactively(args, input_fn=input_fn)

    settings = load_settings(
        args.region,
        target_type=args.target_type,
        access_key_id=args.access_key_id,
        secret_access_key=args.secret_access_key,
        prompt=input_fn,
        secret_prompt=secret_fn,
    )
    ec2 = client_factory(settings) if client_factory else settings.ec2_client()

    console.info("Testing AWS credentials...")
    verify_credentials(ec2, settings.region)
    console.success("AWS credentials validated successfully")
    console.info(f"Connected to AWS Region: {settings.region}")

    if args.list_instances:
        list_instances(ec2, settings.region)
        return 0

    instance_id = args.instance_id
    if args.interactive:
        instance_id = select_instance_interactive(ec2, settings.region, input_fn=input_fn).instance_id
    if not instance_id:
        raise InvalidInput("Instance ID is required. Use --instance-id, --interactive, or --list-instances")

    result = resize_instance(
        ec2, settings, instance_id,
        preflight=args.preflight, rollback_file=args.rollback_file, sleep=sleep,
    )
    if not result.success:
        raise result.error

    if 'modify' in result.actions:
        console.header(f"Successfully converted instance to {settings.target_type} and started it!")
    else:
        console.header("Instance restarted successfully!")
    console.success("Operation completed successfully!")
    print()
    console.info("Please wait up to 10 minutes for the OpenShift cluster to be up and running properly.")
    return 0


def main(argv=None):
    args = parse_args(argv)
    try:
        return run(args)
    except ReconcileError as e:
        console.error(e)
        print(file=sys.stderr)
        console.error("Operation failed. Please check the error messages above.")
        return 1
    except (KeyboardInterrupt, EOFError):
        print(file=sys.stderr)
        console.error("Operation cancelled by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
