"""Building load balancer configuration from running control plane instances.

The client passed to these functions must provide ``list_instances(*filters)``,
where each filter is a mapping of instance config keys to required values, and
which returns objects with a ``name`` and a list of host ``addresses``.
"""

from __future__ import annotations

from typing import Any, Mapping

from capntools.haproxy import (
    DEFAULT_HAPROXY_TEMPLATE,
    BackendServer,
    ConfigData,
    render_haproxy_configuration,
)

CONTROL_PLANE_PORT = "6443"
DEFAULT_BACKEND_WEIGHT = 100


def filter_cluster_control_plane_instances(
    cluster_name: str, cluster_namespace: str
) -> dict[str, str]:
    """Return the instance filter matching a cluster's control plane instances."""
    return {
        "user.cluster-name": cluster_name,
        "user.cluster-namespace": cluster_namespace,
        "user.cluster-role": "control-plane",
    }


def get_load_balancer_configuration(client: Any, *args: Mapping[str, str]) -> ConfigData:
    """Collect the backends for instances matching the filters.

    Instances without a host address are left out; the first address is used.
    """
    servers = {
        instance.name: BackendServer(
            address=instance.addresses[0], weight=DEFAULT_BACKEND_WEIGHT
        )
        for instance in client.list_instances(*args)
        if instance.addresses
    }
    return ConfigData(
        frontend_control_plane_port=CONTROL_PLANE_PORT,
        backend_control_plane_port=CONTROL_PLANE_PORT,
        backend_servers=servers,
    )


def generate_haproxy_load_balancer_configuration(
    client: Any, *args: Mapping[str, str]
) -> bytes:
    """Render the default haproxy configuration for instances matching the filters."""
    config = get_load_balancer_configuration(client, *args)
    return render_haproxy_configuration(config, DEFAULT_HAPROXY_TEMPLATE)