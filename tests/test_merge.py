import copy

import pytest

from bkoperator.merge import merge_maps, merge_objects


def test_merge_maps_empty():
    assert merge_maps() == {}


def test_merge_maps_last_one_wins():
    result = merge_maps({"hello": "world"}, {"foo": "bar"}, {"hello": "everyone"})
    assert result == {"hello": "everyone", "foo": "bar"}


def test_merge_maps_skips_none_and_does_not_alias():
    first = {"a": "1"}
    result = merge_maps(first, None, {"b": "2"})
    assert result == {"a": "1", "b": "2"}
    result["a"] = "changed"
    assert first == {"a": "1"}


CASES = [
    pytest.param(
        {"metadata": {"name": "test-pod", "labels": {"app": "test", "version": "1.0"}}},
        [{"metadata": {"labels": {"version": "2.0", "env": "prod"}}}],
        {"metadata": {"name": "test-pod", "labels": {"app": "test", "version": "2.0", "env": "prod"}}},
        id="single override merges labels",
    ),
    pytest.param(
        {"metadata": {"name": "test-pod", "labels": {"app": "test"}}},
        [
            {"metadata": {"labels": {"version": "1.0"}}},
            {"metadata": {"labels": {"version": "2.0", "env": "prod"}}},
        ],
        {"metadata": {"name": "test-pod", "labels": {"app": "test", "version": "2.0", "env": "prod"}}},
        id="multiple overrides applied in sequence",
    ),
    pytest.param(
        {
            "spec": {
                "containers": [
                    {"name": "app", "image": "nginx:1.0"},
                    {"name": "sidecar", "image": "busybox:1.0"},
                ]
            }
        },
        [
            {
                "spec": {
                    "containers": [
                        {"name": "sidecar", "image": "busybox:2.0"},
                        {"name": "logger", "image": "fluentd:1.0"},
                    ]
                }
            }
        ],
        {
            "spec": {
                "containers": [
                    {"name": "app", "image": "nginx:1.0"},
                    {"name": "sidecar", "image": "busybox:2.0"},
                    {"name": "logger", "image": "fluentd:1.0"},
                ]
            }
        },
        id="container merging by name",
    ),
    pytest.param(
        {"metadata": {"name": "test-pod", "labels": {"app": "test"}}},
        [],
        {"metadata": {"name": "test-pod", "labels": {"app": "test"}}},
        id="empty overrides is no-op",
    ),
    pytest.param(
        {
            "metadata": {
                "name": "test-pod",
                "annotations": {"prometheus.io/scrape": "true", "prometheus.io/port": "8080"},
            }
        },
        [{"metadata": {"annotations": {"prometheus.io/port": "9090", "prometheus.io/path": "/metrics"}}}],
        {
            "metadata": {
                "name": "test-pod",
                "annotations": {
                    "prometheus.io/scrape": "true",
                    "prometheus.io/port": "9090",
                    "prometheus.io/path": "/metrics",
                },
            }
        },
        id="annotations are merged",
    ),
    pytest.param(
        {"spec": {"restartPolicy": "Always", "containers": [{"name": "app", "image": "nginx:1.0"}]}},
        [
            {
                "spec": {
                    "restartPolicy": "OnFailure",
                    "nodeSelector": {"disk": "ssd"},
                    "containers": [{"name": "app", "image": "nginx:1.0"}],
                }
            }
        ],
        {
            "spec": {
                "restartPolicy": "OnFailure",
                "nodeSelector": {"disk": "ssd"},
                "containers": [{"name": "app", "image": "nginx:1.0"}],
            }
        },
        id="spec fields are merged",
    ),
    pytest.param(
        {},
        [{"metadata": {"name": "test-pod", "labels": {"app": "test"}}}],
        {"metadata": {"name": "test-pod", "labels": {"app": "test"}}},
        id="empty base gets overridden",
    ),
]


@pytest.mark.parametrize(("base", "overrides", "want"), CASES)
def test_merge_objects(base, overrides, want):
    result = merge_objects(base, *overrides)
    assert base == want
    assert result is base


def test_merge_objects_with_config_map():
    base = {"metadata": {"name": "test-config"}, "data": {"key1": "value1"}}
    merge_objects(base, {"data": {"key2": "value2"}})
    assert base == {"metadata": {"name": "test-config"}, "data": {"key1": "value1", "key2": "value2"}}


def test_merge_objects_does_not_modify_overrides():
    base = {"metadata": {"name": "test-pod", "labels": {"app": "test"}}}
    override1 = {"metadata": {"labels": {"version": "1.0"}}}
    override2 = {"metadata": {"labels": {"env": "prod"}}}
    override1_copy = copy.deepcopy(override1)
    override2_copy = copy.deepcopy(override2)

    merge_objects(base, override1, override2)

    assert override1 == override1_copy
    assert override2 == override2_copy
    base["metadata"]["labels"]["version"] = "changed"
    assert override1 == override1_copy


def test_merge_objects_merges_nested_container_fields():
    base = {
        "spec": {
            "containers": [
                {
                    "name": "buildkit",
                    "ports": [{"name": "tcp", "containerPort": 1234}],
                    "volumeMounts": [{"name": "buildkitd", "mountPath": "/home/user/.local/share/buildkit"}],
                }
            ]
        }
    }
    override = {"spec": {"containers": [{"name": "buildkit", "resources": {"limits": {"cpu": "1"}}}]}}
    merge_objects(base, override)
    container = base["spec"]["containers"][0]
    assert container["resources"] == {"limits": {"cpu": "1"}}
    assert container["ports"] == [{"name": "tcp", "containerPort": 1234}]


def test_merge_objects_rejects_non_mapping():
    with pytest.raises(TypeError):
        merge_objects({}, ["not", "a", "mapping"])
    with pytest.raises(TypeError):
        merge_objects(["not a dict"], {})