#!/usr/bin/env python3
"""
OperatorHub / NVIDIA GPU Operator prerequisite check.

Read-only: every step is an `oc get` against the cluster the current
`oc login` session points at. A failed critical check stops the run;
warnings (disabled default sources, an existing installation) do not.

Exit Codes:
  0 all critical checks passed
  1 a critical check failed, or oc is missing / not logged in
"""
import argparse
import json
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum

from console import Colors, paint

MARKETPLACE_NAMESPACE = 'openshift-marketplace'
CATALOG_SOURCE = 'certified-operators'
PACKAGE_NAME = 'gpu-operator-certified'
OPERATOR_NAMESPACE = 'nvidia-gpu-operator'
CLUSTER_POLICY = 'gpu-cluster-policy'
INSTALL_MANIFEST = 'openshift/nvidia-gpu-operator-with-timeslicing.yaml'


class Status(Enum):
    PASS = 'PASS'
    WARN = 'WARN'
    FAIL = 'FAIL'
    INFO = 'INFO'


SYMBOLS = {
    Status.PASS: ('✓', Colors.GREEN),
    Status.FAIL: ('✗', Colors.RED),
    Status.WARN: ('⚠', Colors.YELLOW),
    Status.INFO: ('ℹ', Colors.BLUE),
}


@dataclass
class CheckResult:
    step: str
    status: Status
    message: str


@dataclass
class CheckReport:
    results: list = field(default_factory=list)

    @property
    def passed(self):
        return not any(r.status == Status.FAIL for r in self.results)

    def statuses(self, status):
        return [r for r in self.results if r.status == status]


class OpenShiftCLI:
    """Thin wrapper over the `oc` binary returning parsed JSON."""

    def __init__(self, binary='oc', runner=subprocess.run):
        self.binary = binary
        self.runner = runner

    def _run(self, *args):
        return self.runner([self.binary, *args], capture_output=True, text=True)

    def available(self):
        return shutil.which(self.binary) is not None

    def whoami(self):
        result = self._run('whoami')
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def get(self, kind, name=None, namespace=None):
        """Returns the object (or list) as a dict, or None when oc reports an error."""
        args = ['get', kind]
        if name:
            args.append(name)
        if namespace:
            args += ['-n', namespace]
        args += ['-o', 'json']
        result = self._run(*args)
        if result.returncode != 0:
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            return None


def _items(listing):
    return (listing or {}).get('items') or []


def _name(obj):
    return obj.get('metadata', {}).get('name', '')


class PrerequisiteVerifier:

    def __init__(self, oc, out=None):
        self.oc = oc
        self.out = out
        self.report = CheckReport()

    def _record(self, step, status, message):
        self.report.results.append(CheckResult(step, status, message))
        symbol, color = SYMBOLS[status]
        print(f"{paint(symbol, color, self.out or sys.stdout)} {message}", file=self.out)
        return status != Status.FAIL

    def _header(self, title):
        stream = self.out or sys.stdout
        rule = '━' * 54
        print(file=self.out)
        print(paint(rule, Colors.BLUE, stream), file=self.out)
        print(paint(title, Colors.BLUE, stream), file=self.out)
        print(paint(rule, Colors.BLUE, stream), file=self.out)
        print(file=self.out)

    def run(self):
        steps = [
            self.check_session,
            self.check_operatorhub,
            self.check_catalog_sources,
            self.check_package,
            self.check_existing_installation,
        ]
        for step in steps:
            if not step():
                return self.report
        self._summary()
        return self.report

    def check_session(self):
        user = self.oc.whoami()
        if not user:
            return self._record('session', Status.FAIL, "Not logged in to OpenShift cluster. Please run 'oc login' first")

        self._header("OperatorHub and NVIDIA GPU Operator Verification")
        versions = _items(self.oc.get('clusterversion'))
        version = 'unknown'
        if versions:
            version = versions[0].get('status', {}).get('desired', {}).get('version') or 'unknown'
        self._record('session', Status.INFO, f"Connected to OpenShift cluster version: {version}")
        self._record('session', Status.INFO, f"Current user: {user}")
        return True

    def check_operatorhub(self):
        self._header("Step 1: Checking OperatorHub Status")
        hub = self.oc.get('operatorhub', 'cluster')
        if hub is None:
            return self._record('operatorhub', Status.FAIL, "OperatorHub is not available")
        self._record('operatorhub', Status.PASS, "OperatorHub is available")

        if hub.get('spec', {}).get('disableAllDefaultSources') is True:
            self._record('operatorhub', Status.WARN, "All default sources are disabled in OperatorHub")
        else:
            self._record('operatorhub', Status.PASS, "Default sources are enabled in OperatorHub")
        return True

    def check_catalog_sources(self):
        self._header("Step 2: Checking Catalog Sources")
        if self.oc.get('namespace', MARKETPLACE_NAMESPACE) is None:
            return self._record('catalog', Status.FAIL, f"Namespace '{MARKETPLACE_NAMESPACE}' does not exist")
        self._record('catalog', Status.PASS, f"Namespace '{MARKETPLACE_NAMESPACE}' exists")

        sources = {_name(s): s for s in _items(self.oc.get('catalogsources', namespace=MARKETPLACE_NAMESPACE))}
        if not sources:
            return self._record('catalog', Status.FAIL, f"No catalog sources found in {MARKETPLACE_NAMESPACE}")
        self._record('catalog', Status.PASS, f"Found catalog sources: {' '.join(sources)}")

        if CATALOG_SOURCE not in sources:
            return self._record('catalog', Status.FAIL, f"Catalog source '{CATALOG_SOURCE}' not found")
        self._record('catalog', Status.PASS, f"Catalog source '{CATALOG_SOURCE}' is available")

        state = sources[CATALOG_SOURCE].get('status', {}).get('connectionState', {}).get('lastObservedState')
        if state == 'READY':
            self._record('catalog', Status.PASS, f"Catalog source '{CATALOG_SOURCE}' is READY")
        else:
            self._record('catalog', Status.WARN, f"Catalog source '{CATALOG_SOURCE}' status: {state}")
        return True

    def check_package(self):
        self._header("Step 3: Checking NVIDIA GPU Operator Availability")
        self._record('package', Status.INFO, "Searching for NVIDIA GPU Operator package (this may take a moment)...")
        manifest = self.oc.get('packagemanifest', PACKAGE_NAME, namespace=MARKETPLACE_NAMESPACE)
        if manifest is None:
            self._record('package', Status.FAIL, f"NVIDIA GPU Operator package '{PACKAGE_NAME}' not found")
            related = [
                _name(p) for p in _items(self.oc.get('packagemanifests', namespace=MARKETPLACE_NAMESPACE))
                if 'gpu' in _name(p).lower()
            ]
            self._record('package', Status.INFO, "Available GPU-related packages: " + (', '.join(related) or 'None found'))
            return False
        self._record('package', Status.PASS, f"NVIDIA GPU Operator package '{PACKAGE_NAME}' is available")

        status = manifest.get('status', {})
        default_channel = status.get('defaultChannel')
        channels = status.get('channels') or []
        latest_csv = next((c.get('currentCSV') for c in channels if c.get('name') == default_channel), None)
        print(file=self.out)
        self._record('package', Status.INFO, f"Package Name: {_name(manifest) or PACKAGE_NAME}")
        self._record('package', Status.INFO, f"Default Channel: {default_channel}")
        self._record('package', Status.INFO, f"Available Channels: {' '.join(c.get('name', '') for c in channels)}")
        self._record('package', Status.INFO, f"Catalog Source: {status.get('catalogSource')}")
        self._record('package', Status.INFO, f"Latest CSV: {latest_csv}")
        return True

    def check_existing_installation(self):
        self._header("Step 4: Checking Existing Installation")
        if self.oc.get('namespace', OPERATOR_NAMESPACE) is None:
            return self._record(
                'installation', Status.INFO,
                f"Namespace '{OPERATOR_NAMESPACE}' does not exist (fresh installation possible)",
            )
        self._record('installation', Status.WARN, f"Namespace '{OPERATOR_NAMESPACE}' already exists")

        subscription = self.oc.get('subscription', PACKAGE_NAME, namespace=OPERATOR_NAMESPACE)
        if subscription is not None:
            status = subscription.get('status', {})
            self._record('installation', Status.WARN, "NVIDIA GPU Operator subscription already exists")
            self._record('installation', Status.INFO, f"Subscription State: {status.get('state')}")
            self._record('installation', Status.INFO, f"Installed CSV: {status.get('installedCSV')}")
        else:
            self._record('installation', Status.INFO, "No NVIDIA GPU Operator subscription found")

        if self.oc.get('clusterpolicy', CLUSTER_POLICY) is not None:
            self._record('installation', Status.WARN, f"ClusterPolicy '{CLUSTER_POLICY}' already exists")
        else:
            self._record('installation', Status.INFO, "No ClusterPolicy found")
        return True

    def _summary(self):
        self._header("Verification Summary")
        stream = self.out or sys.stdout
        print(paint("✓ All prerequisite checks passed!", Colors.GREEN, stream), file=self.out)
        print(file=self.out)
        print("You can proceed with installing the NVIDIA GPU Operator using:", file=self.out)
        print(f"  {paint(f'oc apply -f {INSTALL_MANIFEST}', Colors.YELLOW, stream)}", file=self.out)
        print(file=self.out)


def run_checks(oc, out=None):
    return PrerequisiteVerifier(oc, out=out).run()


def main(argv=None):
    argparse.ArgumentParser(
        prog="check-operatorhub",
        description="Verify OperatorHub and NVIDIA GPU Operator prerequisites on the logged-in cluster",
    ).parse_args(argv)
    oc = OpenShiftCLI()
    if not oc.available():
        print(f"{paint('✗', Colors.RED, sys.stdout)} oc CLI is not installed or not in PATH")
        return 1
    report = run_checks(oc)
    return 0 if report.passed else 1


if __name__ == "__main__":
    sys.exit(main())
