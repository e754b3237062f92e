"""Pytest configuration and fixtures."""

import pytest


def make_object(name, pending=None, namespace="default", kind="ConfigMap", **extra):
    """Build a candidate object with the given pending initializer names."""
    obj = {
        "apiVersion": "v1",
        "kind": kind,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "resourceVersion": "100",
        },
    }
    if pending is not None:
        obj["metadata"]["initializers"] = {
            "pending": [{"name": n} for n in pending]
        }
    obj.update(extra)
    return obj


def make_config_record(
    name="agent-a",
    initializer_name="agentA",
    resources=(("v1", ["configmaps"]),),
):
    """Build a raw InitializerController record."""
    return {
        "apiVersion": "metacontroller.k8s.io/v1alpha1",
        "kind": "InitializerController",
        "metadata": {"name": name},
        "spec": {
            "initializerName": initializer_name,
            "uninitializedResources": [
                {"apiVersion": api_version, "resources": list(names)}
                for api_version, names in resources
            ],
            "clientConfig": {"service": {"name": f"{name}-hook", "namespace": "hooks"}},
            "hooks": {"init": {"path": "/init"}},
        },
    }


@pytest.fixture
def sample_object():
    """Uninitialized ConfigMap waiting on agentA then agentB."""
    return make_object("cm-1", pending=["agentA", "agentB"])


@pytest.fixture
def sample_config_record():
    """Raw InitializerController for agentA over configmaps."""
    return make_config_record()
