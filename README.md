# capntools

Building blocks for running Kubernetes clusters on Incus or LXD instances.
It is a library; it installs no commands.

## What is in it

- `capntools.haproxy`: the default haproxy configuration template
  (`DEFAULT_HAPROXY_TEMPLATE`, Jinja2 syntax), the `ConfigData` and
  `BackendServer` dataclasses, `render_haproxy_configuration(data, template)`
  which returns the rendered configuration as bytes, and `join_host_port`.
  Templates that fail to parse or render raise `TemplateError`.
- `capntools.kubevip`: `render_kube_vip_configuration` renders a kube-vip
  static pod manifest from a `KubeVIPTemplateInput` (interface, address,
  image, kubeconfig path).
- `capntools.lbconfig`: `filter_cluster_control_plane_instances` builds the
  instance filter for a cluster's control plane;
  `get_load_balancer_configuration` and
  `generate_haproxy_load_balancer_configuration` build a `ConfigData` (or the
  rendered default haproxy configuration) from the instances a client
  returns. The client must provide `list_instances(*filters)`, returning
  objects with a `name` and a list of `addresses`; instances without an
  address are left out and the first address is used, with weight 100 and
  port 6443.
- `capntools.launch`: immutable `LaunchOptions` and `Image`, whose `with_*`
  methods return new objects, plus `haproxy_lxc_launch_options()` and
  `haproxy_oci_launch_options()` for haproxy load balancer containers.
- `capntools.machines`: `machine_addresses` (host name, then each address as
  internal and external IP), `get_bootstrap_data` (reads the `value` key of a
  bootstrap secret, raising `LookupError` when the secret or key is missing)
  and `lxc_cluster_to_lxc_machines`, which maps a cluster to reconcile
  `Request`s for its machines that have an infrastructure reference.
- A local simplestreams image index:
  - `capntools.ssindex`: `get_or_create_index(root_dir)` opens or creates
    `streams/v1/index.json`, `streams/v1/images.json` and `images/` under a
    directory (the current one when `root_dir` is empty). `Index.save()`
    writes both JSON files; `Index.add_product_name()` lists a product.
  - `capntools.ssimport`: `import_image(index, image_type, path, aliases,
    incus, lxd)` adds a `"container"` or `"virtual-machine"` unified tarball.
    A `.zip` holding a single `.tar.gz` is unpacked first
    (`extract_unified_tarball_from_zip` is the context manager that does it).
  - `capntools.sscontainer` and `capntools.ssvm` do the actual imports;
    virtual machine tarballs are split into a metadata archive and a root
    filesystem. Failures raise `ImportError_`.
  - `capntools.ssutil`: size and SHA-256 helpers and `copy_file`.
- `capntools.kini`: `setup_environment(docker, kind)` creates a temporary
  directory with `docker` and/or `kind` symlinks to the running program,
  prepends it to `PATH`, and returns the directory and a cleanup function
  that removes it (the `PATH` change is not undone).

## Examples

```python
from capntools.haproxy import join_host_port

join_host_port("10.0.0.1", "6443")   # "10.0.0.1:6443"
join_host_port("fd42::1", "6443")    # "[fd42::1]:6443"
```

Render an haproxy configuration:

```python
from capntools.haproxy import (
    DEFAULT_HAPROXY_TEMPLATE, BackendServer, ConfigData, render_haproxy_configuration,
)

data = ConfigData(backend_servers={"cp-0": BackendServer("10.0.0.10")})
config = render_haproxy_configuration(data, DEFAULT_HAPROXY_TEMPLATE)
```

Add a container image to a simplestreams directory:

```python
from capntools.ssindex import get_or_create_index
from capntools.ssimport import import_image

index = get_or_create_index("/srv/images")
import_image(index, "container", "kubeadm.tar.gz", ["kubeadm/v1.32.0"], True, True)
```

The directory then holds `streams/v1/index.json`, `streams/v1/images.json`
and the image files under `images/`, ready to be served by any static web
server.

## What it does not do

- It does not talk to an Incus or LXD server. There is no client here:
  launching instances, writing files into them, creating network load
  balancers and similar operations are left to the caller, who passes in a
  client object where one is needed.
- It has no load balancer manager objects that create, reconfigure or delete
  load balancers; it only builds the configuration they would use.
- It has no image-building pipeline and no command-line tools.
- It does not serve the simplestreams index; it only writes the files.

## Requirements

Python 3.10 or newer, with Jinja2 and PyYAML.