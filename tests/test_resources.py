"""Tests for the record builders."""

import json

from cim_wizard import HighAvailabilityMode, HostsSelectionValues
from cim_wizard.resources import (
    annotations_from_agent_selector,
    build_agent_cluster_install,
    build_agent_selector,
    build_cluster_deployment,
    build_pull_secret,
    parse_labels,
    selector_to_label_selector,
)

LOCATION_KEY = "agent-install.openshift.io/location"
ANNOTATION_KEY = "agent-install.openshift.io/agent-selector"


def test_build_pull_secret():
    secret = build_pull_secret("clusters", "edge-01", '{"auths":{}}')

    assert secret["metadata"] == {"name": "pullsecret-edge-01", "namespace": "clusters"}
    assert secret["type"] == "kubernetes.io/dockerconfigjson"
    assert secret["data"][".dockerconfigjson"] == "eyJhdXRocyI6e319"


def test_build_cluster_deployment(details_values):
    cd = build_cluster_deployment("clusters", details_values, "pullsecret-edge-01")

    assert cd["apiVersion"] == "hive.openshift.io/v1"
    assert cd["spec"]["clusterName"] == "edge-01"
    assert cd["spec"]["clusterInstallRef"] == {
        "group": "extensions.hive.openshift.io",
        "kind": "AgentClusterInstall",
        "name": "edge-01",
        "version": "v1beta1",
    }
    assert "annotations" not in cd["metadata"]


def test_build_agent_cluster_install_single_node():
    aci = build_agent_cluster_install(
        "clusters", "sno", "sno", "openshift-v4.9.0", HighAvailabilityMode.NONE
    )

    assert aci["spec"]["provisionRequirements"] == {"controlPlaneAgents": 1}
    assert aci["spec"]["networking"]["serviceNetwork"] == ["172.30.0.0/16"]


def test_parse_labels():
    assert parse_labels(["rack=r1", " zone = a ", "gpu", "=x"]) == {
        "rack": "r1",
        "zone": "a",
        "gpu": "",
    }


def test_build_agent_selector_empty():
    assert build_agent_selector(HostsSelectionValues(), LOCATION_KEY) == {}


def test_annotations_keep_unrelated_keys(hosts_values):
    cd = {"metadata": {"annotations": {"owner": "team-a"}}}

    annotations = annotations_from_agent_selector(cd, hosts_values, ANNOTATION_KEY, LOCATION_KEY)

    assert annotations["owner"] == "team-a"
    assert json.loads(annotations[ANNOTATION_KEY])["matchLabels"] == {"rack": "r1"}
    # The input record is not modified
    assert cd["metadata"]["annotations"] == {"owner": "team-a"}


def test_annotations_are_stable(hosts_values):
    """Test the same selection always serializes to the same string."""
    reordered = hosts_values.model_copy(update={"locations": ["prague", "brno"]})
    original = hosts_values.model_copy(update={"locations": ["brno", "prague"]})

    first = annotations_from_agent_selector({}, reordered, ANNOTATION_KEY, LOCATION_KEY)
    second = annotations_from_agent_selector({}, original, ANNOTATION_KEY, LOCATION_KEY)

    assert first == second


def test_selector_to_label_selector():
    selector = {
        "matchLabels": {"rack": "r1"},
        "matchExpressions": [
            {"key": LOCATION_KEY, "operator": "In", "values": ["brno", "prague"]},
            {"key": "gpu", "operator": "Exists"},
            {"key": "decommissioned", "operator": "DoesNotExist"},
        ],
    }

    assert selector_to_label_selector(selector) == (
        f"rack=r1,{LOCATION_KEY} in (brno,prague),gpu,!decommissioned"
    )
    assert selector_to_label_selector({}) is None
    assert selector_to_label_selector(None) is None
