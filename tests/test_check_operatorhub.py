import io
import subprocess
from unittest.mock import MagicMock

import pytest

from check_operatorhub import (
    CATALOG_SOURCE,
    MARKETPLACE_NAMESPACE,
    OPERATOR_NAMESPACE,
    PACKAGE_NAME,
    OpenShiftCLI,
    Status,
    main,
    run_checks,
)


class FakeOc:

    def __init__(self, objects, user='kube:admin', installed=True):
        self.installed = installed
        self.objects = objects
        self.user = user
        self.calls = []

    def available(self):
        return self.installed

    def whoami(self):
        return self.user

    def get(self, kind, name=None, namespace=None):
        self.calls.append((kind, name, namespace))
        return self.objects.get((kind, name, namespace))


def healthy_cluster():
    return {
        ('clusterversion', None, None): {'items': [{'status': {'desired': {'version': '4.14.8'}}}]},
        ('operatorhub', 'cluster', None): {'spec': {}},
        ('namespace', MARKETPLACE_NAMESPACE, None): {'metadata': {'name': MARKETPLACE_NAMESPACE}},
        ('catalogsources', None, MARKETPLACE_NAMESPACE): {'items': [
            {'metadata': {'name': 'redhat-operators'}},
            {'metadata': {'name': CATALOG_SOURCE},
             'status': {'connectionState': {'lastObservedState': 'READY'}}},
        ]},
        ('packagemanifest', PACKAGE_NAME, MARKETPLACE_NAMESPACE): {
            'metadata': {'name': PACKAGE_NAME},
            'status': {
                'catalogSource': CATALOG_SOURCE,
                'defaultChannel': 'v24.3',
                'channels': [
                    {'name': 'v23.9', 'currentCSV': 'gpu-operator-certified.v23.9.2'},
                    {'name': 'v24.3', 'currentCSV': 'gpu-operator-certified.v24.3.0'},
                ],
            },
        },
    }


def statuses(report):
    return [r.status for r in report.results]


def test_healthy_cluster_passes():
    out = io.StringIO()
    report = run_checks(FakeOc(healthy_cluster()), out=out)

    assert report.passed
    assert Status.WARN not in statuses(report)
    text = out.getvalue()
    assert '4.14.8' in text
    assert 'Latest CSV: gpu-operator-certified.v24.3.0' in text
    assert 'All prerequisite checks passed' in text


def test_not_logged_in_fails():
    report = run_checks(FakeOc(healthy_cluster(), user=None), out=io.StringIO())

    assert not report.passed
    assert len(report.results) == 1


def test_missing_operatorhub_short_circuits():
    objects = healthy_cluster()
    del objects[('operatorhub', 'cluster', None)]
    oc = FakeOc(objects)

    report = run_checks(oc, out=io.StringIO())

    assert not report.passed
    assert report.results[-1].step == 'operatorhub'
    assert not any(kind == 'catalogsources' for kind, _, _ in oc.calls)


def test_disabled_default_sources_only_warns():
    objects = healthy_cluster()
    objects[('operatorhub', 'cluster', None)] = {'spec': {'disableAllDefaultSources': True}}

    report = run_checks(FakeOc(objects), out=io.StringIO())

    assert report.passed
    assert [r.message for r in report.statuses(Status.WARN)] == ["All default sources are disabled in OperatorHub"]


def test_missing_marketplace_namespace_fails():
    objects = healthy_cluster()
    del objects[('namespace', MARKETPLACE_NAMESPACE, None)]

    assert not run_checks(FakeOc(objects), out=io.StringIO()).passed


def test_missing_certified_catalog_fails():
    objects = healthy_cluster()
    objects[('catalogsources', None, MARKETPLACE_NAMESPACE)] = {'items': [{'metadata': {'name': 'redhat-operators'}}]}

    report = run_checks(FakeOc(objects), out=io.StringIO())

    assert not report.passed
    assert report.results[-1].message == f"Catalog source '{CATALOG_SOURCE}' not found"


def test_catalog_not_ready_warns():
    objects = healthy_cluster()
    sources = objects[('catalogsources', None, MARKETPLACE_NAMESPACE)]['items']
    sources[1]['status']['connectionState']['lastObservedState'] = 'CONNECTING'

    report = run_checks(FakeOc(objects), out=io.StringIO())

    assert report.passed
    assert 'CONNECTING' in report.statuses(Status.WARN)[0].message


def test_missing_package_lists_gpu_packages():
    objects = healthy_cluster()
    del objects[('packagemanifest', PACKAGE_NAME, MARKETPLACE_NAMESPACE)]
    objects[('packagemanifests', None, MARKETPLACE_NAMESPACE)] = {'items': [
        {'metadata': {'name': 'amd-gpu-operator'}},
        {'metadata': {'name': 'web-terminal'}},
    ]}

    report = run_checks(FakeOc(objects), out=io.StringIO())

    assert not report.passed
    assert report.results[-1].message == "Available GPU-related packages: amd-gpu-operator"


def test_existing_installation_warns_but_passes():
    objects = healthy_cluster()
    objects[('namespace', OPERATOR_NAMESPACE, None)] = {'metadata': {'name': OPERATOR_NAMESPACE}}
    objects[('subscription', PACKAGE_NAME, OPERATOR_NAMESPACE)] = {
        'status': {'state': 'AtLatestKnown', 'installedCSV': 'gpu-operator-certified.v24.3.0'}
    }
    objects[('clusterpolicy', 'gpu-cluster-policy', None)] = {'metadata': {'name': 'gpu-cluster-policy'}}

    report = run_checks(FakeOc(objects), out=io.StringIO())

    assert report.passed
    assert len(report.statuses(Status.WARN)) == 3
    assert any('AtLatestKnown' in r.message for r in report.results)


def completed(returncode=0, stdout=''):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr='')


def test_cli_get_builds_json_command():
    runner = MagicMock(return_value=completed(stdout='{"metadata": {"name": "cluster"}}'))
    oc = OpenShiftCLI(runner=runner)

    assert oc.get('catalogsource', CATALOG_SOURCE, namespace=MARKETPLACE_NAMESPACE) == {'metadata': {'name': 'cluster'}}
    runner.assert_called_once_with(
        ['oc', 'get', 'catalogsource', CATALOG_SOURCE, '-n', MARKETPLACE_NAMESPACE, '-o', 'json'],
        capture_output=True, text=True,
    )


@pytest.mark.parametrize('result', [completed(returncode=1), completed(stdout='not json')])
def test_cli_get_returns_none_on_error(result):
    oc = OpenShiftCLI(runner=MagicMock(return_value=result))

    assert oc.get('operatorhub', 'cluster') is None


def test_cli_whoami():
    oc = OpenShiftCLI(runner=MagicMock(return_value=completed(stdout='kube:admin\n')))

    assert oc.whoami() == 'kube:admin'


def test_main_exit_zero_when_checks_pass(monkeypatch):
    monkeypatch.setattr('check_operatorhub.OpenShiftCLI', lambda: FakeOc(healthy_cluster()))

    assert main([]) == 0


def test_main_exit_one_on_failed_check(monkeypatch):
    objects = healthy_cluster()
    del objects[('namespace', MARKETPLACE_NAMESPACE, None)]
    monkeypatch.setattr('check_operatorhub.OpenShiftCLI', lambda: FakeOc(objects))

    assert main([]) == 1


def test_main_exit_one_without_oc(monkeypatch, capsys):
    oc = FakeOc(healthy_cluster(), installed=False)
    monkeypatch.setattr('check_operatorhub.OpenShiftCLI', lambda: oc)

    assert main([]) == 1
    assert 'oc CLI is not installed' in capsys.readouterr().out
    assert oc.calls == []
