import re
import sys

import console
from ec2_instances import describe_region_instances
from errors import RegionQueryFailed, SelectionCancelled

TABLE_ROW = "{:<20} {:<30} {:<20} {:<15}"
NUMBERED_ROW = "{:>3}) {:<20} {:<30} {:<20} {:<15}"
DIGITS = re.compile(r"^[0-9]+$")


def list_instances(ec2, region, out=None):
    """Prints every instance in the region; an empty region is a warning, not an error."""
    console.header(f"Listing EC2 Instances in {region}", stream=out)
    instances = describe_region_instances(ec2, region)
    if not instances:
        console.warn(f"No instances found in region {region}", stream=out)
        return []

    print(TABLE_ROW.format("Instance ID", "Name", "Instance Type", "State"), file=out)
    print("-" * 80, file=out)
    for instance in instances:
        print(TABLE_ROW.format(instance.instance_id, instance.name, instance.instance_type, instance.state.value), file=out)
    return instances


def _print_choices(instances, out):
    rule = "-" * 93
    print("Available EC2 Instances:", file=out)
    print(file=out)
    print("{:>3}  {:<20} {:<30} {:<20} {:<15}".format("#", "Instance ID", "Name", "Instance Type", "State"), file=out)
    print(rule, file=out)
    for number, instance in enumerate(instances, start=1):
        print(NUMBERED_ROW.format(number, instance.instance_id, instance.name, instance.instance_type, instance.state.value), file=out)
    print(file=out)
    print(rule, file=out)


def select_instance(instances, region=None, input_fn=input, out=None):
    if not instances:
        raise RegionQueryFailed(f"No instances found in region {region}", region=region)

    _print_choices(instances, out)
    total = len(instances)
    while True:
        try:
            choice = input_fn(f"Enter the number of the instance to convert (1-{total}, or 'q' to quit): ").strip()
        except EOFError:
            choice = 'q'

        if choice in ('q', 'Q'):
            console.warn("Operation cancelled by user", stream=out)
            raise SelectionCancelled("Operation cancelled by user", region=region)
        if not DIGITS.match(choice):
            console.error("Please enter a valid number", stream=out)
            continue
        number = int(choice)
        if number < 1 or number > total:
            console.error(f"Please enter a number between 1 and {total}", stream=out)
            continue
        break

    selected = instances[number - 1]
    print(file=out)
    console.success(f"Selected instance: {selected.instance_id} ({selected.name})", stream=out)
    print(file=out)
    return selected


def select_instance_interactive(ec2, region, input_fn=input, out=None):
    console.header(f"Select EC2 Instance in {region}", stream=out)
    instances = describe_region_instances(ec2, region)
    return select_instance(instances, region=region, input_fn=input_fn, out=out)


if __name__ == "__main__":
    from convert_ec2_instance import main
    sys.exit(main(['--list-instances'] + sys.argv[1:]))
