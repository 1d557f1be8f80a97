import pytest

from bkoperator.api import (
    CONDITION_TRUE,
    TYPE_READY,
    BuildkitTemplate,
    BuildkitTemplateSpec,
    NotFoundError,
    ObjectKey,
    ObjectStore,
    new_scheme,
)
from bkoperator.template_reconciler import TemplateReconciler

SOME_TOML = """
[worker.oci]
  enabled = true
[worker.containerd]
  enabled = false"""

SOME_OTHER_TOML = """
[worker.containerd]
  enabled = true
[worker.oci]
  enabled = false"""

NAMESPACE = "reconciler-test"
CONFIG_MAP_KEY = ObjectKey(namespace=NAMESPACE, name="buildkit-test-template-toml")


@pytest.fixture
def store():
    return ObjectStore(new_scheme())


@pytest.fixture
def template():
    return BuildkitTemplate(
        name="test-template",
        namespace=NAMESPACE,
        spec=BuildkitTemplateSpec(
            pod_template={
                "spec": {"containers": [{"name": "buildkit", "image": "moby/buildkit:latest"}]}
            },
            buildkitd_toml="",
        ),
    )


def test_empty_toml_creates_no_config_map(store, template):
    result = TemplateReconciler(store).reconcile(template)
    assert result.done is True
    assert ("ConfigMap", CONFIG_MAP_KEY) not in store
    with pytest.raises(NotFoundError):
        store.get("ConfigMap", CONFIG_MAP_KEY)
    assert template.get_condition(TYPE_READY).status == CONDITION_TRUE


def test_config_map_created_when_toml_added(store, template):
    reconciler = TemplateReconciler(store)
    reconciler.reconcile(template)

    template.spec.buildkitd_toml = SOME_TOML
    reconciler.reconcile(template)

    config_map = store.get("ConfigMap", CONFIG_MAP_KEY)
    assert config_map["data"]["buildkitd.toml"] == SOME_TOML
    assert template.get_condition(TYPE_READY).status == CONDITION_TRUE
    assert [ref.name for ref in template.status.resource_refs] == [CONFIG_MAP_KEY.name]


def test_config_map_updated_when_toml_changes(store, template):
    reconciler = TemplateReconciler(store)
    template.spec.buildkitd_toml = SOME_TOML
    reconciler.reconcile(template)

    template.spec.buildkitd_toml = SOME_OTHER_TOML
    reconciler.reconcile(template)

    config_map = store.get("ConfigMap", CONFIG_MAP_KEY)
    assert config_map["data"]["buildkitd.toml"] == SOME_OTHER_TOML
    assert template.get_condition(TYPE_READY).status == CONDITION_TRUE


def test_config_map_deleted_when_toml_removed(store, template):
    reconciler = TemplateReconciler(store)
    template.spec.buildkitd_toml = SOME_TOML
    reconciler.reconcile(template)
    assert ("ConfigMap", CONFIG_MAP_KEY) in store

    template.spec.buildkitd_toml = ""
    reconciler.reconcile(template)

    assert ("ConfigMap", CONFIG_MAP_KEY) not in store
    assert template.status.resource_refs == []
    assert template.get_condition(TYPE_READY).status == CONDITION_TRUE