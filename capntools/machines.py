"""Helpers for reconciling LXC machines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

CLUSTER_NAME_LABEL = "cluster.x-k8s.io/cluster-name"

MACHINE_HOST_NAME = "Hostname"
MACHINE_INTERNAL_IP = "InternalIP"
MACHINE_EXTERNAL_IP = "ExternalIP"


@dataclass(frozen=True)
class MachineAddress:
    """An address reported for a machine."""

    type: str
    address: str


@dataclass
class MachineRecord:
    """A machine as seen when mapping clusters to LXC machines."""

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    infrastructure_ref_name: str = ""


@dataclass(frozen=True)
class Request:
    """A reconcile request for a namespaced object."""

    namespace: str
    name: str


def machine_addresses(instance_name: str, addresses: Iterable[str]) -> list[MachineAddress]:
    """Build machine addresses: the host name, then each address as internal and external IP."""
    result = [MachineAddress(MACHINE_HOST_NAME, instance_name)]
    for address in addresses:
        result.append(MachineAddress(MACHINE_INTERNAL_IP, address))
        result.append(MachineAddress(MACHINE_EXTERNAL_IP, address))
    return result


def get_bootstrap_data(
    secrets: Mapping[tuple[str, str], Mapping[str, bytes | str]],
    namespace: str,
    data_secret_name: str,
) -> str:
    """Return the "value" key of the bootstrap data secret.

    ``secrets`` maps ``(namespace, name)`` to the secret's data.
    """
    try:
        data = secrets[(namespace, data_secret_name)]
    except KeyError as exc:
        raise LookupError(
            f'failed to retrieve bootstrap data secret "{data_secret_name}": not found'
        ) from exc
    if "value" not in data:
        raise LookupError(f'secret "{data_secret_name}" is missing value key')
    value = data["value"]
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def lxc_cluster_to_lxc_machines(
    cluster_name: str | None, namespace: str, machines: Iterable[MachineRecord]
) -> list[Request]:
    """Requests for the LXC machines of the cluster owning an LXC cluster.

    ``cluster_name`` is the owning cluster, or None when it has none; machines
    without an infrastructure reference are left out.
    """
    if not cluster_name:
        return []
    return [
        Request(namespace=machine.namespace, name=machine.infrastructure_ref_name)
        for machine in machines
        if machine.namespace == namespace
        and machine.labels.get(CLUSTER_NAME_LABEL) == cluster_name
        and machine.infrastructure_ref_name
    ]