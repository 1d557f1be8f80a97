# bkoperator

`bkoperator` manages Buildkit instances as declarative objects. A
`BuildkitTemplate` describes what Buildkit pods look like. It holds a pod
template, an optional `buildkitd.toml`, a port and a `require_owner` flag.
A `Buildkit` names the template it uses. It can also carry its own labels,
annotations and resource requirements.

Native objects such as pods and ConfigMaps are plain dicts in their JSON
form, for example `{"metadata": {...}, "spec": {...}}`. The custom objects
are dataclasses.

## Modules

### `bkoperator.api`

Holds the data model and an in-memory store.

- **Data classes:** `Buildkit`, `BuildkitSpec`, `BuildkitStatus`,
  `BuildkitTemplate`, `BuildkitTemplateSpec`, `BuildkitTemplateStatus`,
  `Condition`, `TypedObjectRef` and `ObjectKey`.
- **Conditions:** both custom kinds have `get_condition(type)` and
  `set_conditions(*conditions)`. When a condition is not set,
  `get_condition` returns one with status `Unknown`.
- **`Scheme` and `new_scheme()`:** map a kind name to its Python type.
- **`ObjectStore`:** stores copies of objects, addressed by kind and
  `ObjectKey`. It has `add`, `get` and `delete`.
  - `get` and `delete` raise `NotFoundError` when the object is absent.
  - When a dict has a `metadata.generateName` and no name, `add` gives it a
    random name with that prefix.
  - When the store was built with a scheme, `add` checks each object's
    type against it.

### `bkoperator.merge`

- `merge_maps(*maps)` merges maps into a new dict. Later keys win.
- `merge_objects(base, *overrides)` layers overrides onto `base` in place
  and returns `base`.
  - Fields that an override lacks are kept.
  - Mappings merge recursively.
  - The lists listed in `MERGE_KEYS` merge element by element using their
    key, so `containers` merge by `name`. The order of `base` is kept and
    new elements are appended.
  - Any other value is replaced.
  - The overrides are never modified.

### `bkoperator.resources`

- `parse_quantity(text)` returns a `Quantity`, such as `500m` or `4Gi`.
  Quantities compare by their value. A malformed string raises
  `ValueError`.
- `merge_resources(desired, defaults)` applies the desired
  `limits`/`requests` on top of the defaults and returns a new dict.
  - A desired limit is used only when there is no default limit for that
    resource, or when it does not exceed the default.
  - A desired request is always used, but it is capped at the merged
    limit.

### `bkoperator.template_builder`

`TemplateBuilder(template)` derives the objects a template owns.

- `config_map_name()` returns `buildkit-<name>-toml`.
- `config_map()` returns the ConfigMap dict that holds `buildkitd.toml`.
  It returns `None` when the template has no TOML.

### `bkoperator.pod_builder`

`PodBuilder(buildkit, store).build_pod()` looks up the referenced template
and returns the complete pod dict.

The pod is built in three layers, each merged over the one before:

1. The built-in defaults:
   - a `buildkit` container, with the `--addr` argument, a TCP port, and
     gRPC readiness and liveness probes;
   - an `emptyDir` volume;
   - a restart policy of `Never`;
   - a 900-second grace period;
   - a config volume, added when the template has TOML.
2. The template's pod template.
3. These required values:
   - a `generateName` of `<buildkit name>-`;
   - the namespace;
   - the merged resources.

A missing template raises `NotFoundError`.

### `bkoperator.webhooks`

- **`BuildkitValidator(store)`** requires `spec.template` to be set, and
  requires that template to exist in the object's namespace.
- **`BuildkitTemplateValidator`** checks four things:
  - the name is at most 57 characters;
  - the port is from 1 to 65535;
  - the pod template sets no name;
  - `buildkitd_toml` parses as TOML.
- **`BuildkitTemplateDefaulter().default(template)`** fills in gaps in the
  template:
  - it sets port 1234 when the port is 0;
  - it ensures there is at least one container;
  - it gives the first container the image `moby/buildkit:latest` when
    that container has none.
- **`setup_webhooks(store)`** returns a dict keyed by kind. Each value has
  `create`, `update` and `delete` methods. For templates, these run the
  defaulter first and then the validator.

The validators have `validate_create`, `validate_update` and
`validate_delete`. Each returns a list of warnings, which is always empty.
They raise the following errors:

- `InvalidError` when fields are invalid. Its `errors` attribute lists one
  `FieldError` for each problem.
- `BadRequestError` when given the wrong kind of object.
- `InternalError` when a template lookup fails for any reason other than
  the template being missing.

The defaulter raises `TypeError` when given the wrong kind of object.

### `bkoperator.reconcile`

- `OutputSet` collects the objects a pass wants to apply or delete.
- `Result`, `done_result()` and `requeue_result(message, reason)` describe
  how a pass ended.
- `ControlPlaneContext` carries shared settings, currently a `metrics`
  slot.

### Reconcilers

Each reconciler runs one pass on the object it is given. It commits the
changes to the store, keeps the object's `status.resource_refs` up to
date, and sets its conditions.

**`TemplateReconciler(store).reconcile(template)`**
(in `bkoperator.template_reconciler`):

- It creates, updates or removes the template's ConfigMap.
- It sets `Ready` to `True`.

**`BuildkitReconciler(store).reconcile(buildkit)`**
(in `bkoperator.buildkit_reconciler`) keeps exactly one managed pod:

- When there is no pod, it creates one.
- When there are extra pods, it deletes them.
- Either of those changes returns a result with
  `requeue_after_completion=True`.

Once the single pod is in place, it looks at the pod's state:

- **Failed pod:** `Deployed` is set to `False`, with reason `Unavailable`.
- **Pod not running, or a container not ready:** the result asks for a
  requeue.
- **Pod running and all containers ready:** the endpoint is set to
  `tcp://<pod-ip>:<port>` and `Deployed` and `Ready` become `True`.

## Example

```python
from bkoperator.api import (
    Buildkit,
    BuildkitSpec,
    BuildkitTemplate,
    BuildkitTemplateSpec,
    ObjectStore,
    new_scheme,
)
from bkoperator.buildkit_reconciler import BuildkitReconciler
from bkoperator.webhooks import setup_webhooks

store = ObjectStore(new_scheme())
admission = setup_webhooks(store)

template = BuildkitTemplate(
    name="default",
    namespace="builds",
    spec=BuildkitTemplateSpec(
        pod_template={"spec": {"containers": [{"name": "buildkit"}]}},
        buildkitd_toml="[worker.oci]\nenabled = true\n",
    ),
)
admission["BuildkitTemplate"].create(template)  # port 1234, moby/buildkit:latest
store.add("BuildkitTemplate", template)

buildkit = Buildkit(name="builder", namespace="builds", spec=BuildkitSpec(template="default"))
admission["Buildkit"].create(buildkit)

reconciler = BuildkitReconciler(store)
reconciler.reconcile(buildkit)  # creates the pod

# Mark the pod running and ready, as a cluster would.
ref = buildkit.status.resource_refs[0]
pod = store.get("Pod", ref.object_key())
pod["status"] = {
    "phase": "Running",
    "podIP": "10.0.0.1",
    "containerStatuses": [{"name": "buildkit", "ready": True}],
}
store.add("Pod", pod)

reconciler.reconcile(buildkit)
print(buildkit.status.endpoint)  # tcp://10.0.0.1:1234
```

## What the package does not do

- It does not connect to a cluster API server. It does not start pods or
  serve admission requests over HTTP. Every object lives in the in-memory
  `ObjectStore`.
- There is no controller process or command line. Nothing watches
  objects, schedules requeues or retries. A reconcile pass runs only when
  `reconcile` is called.
- `ControlPlaneContext.metrics` is carried along but nothing records
  metrics into it.

## Running the tests

```
pip install -e ".[test]"
pytest
```