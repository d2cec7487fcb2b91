"""Instance launch options and the haproxy load balancer presets."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping

CONTAINER = "container"
VIRTUAL_MACHINE = "virtual-machine"

SIMPLESTREAMS = "simplestreams"
OCI = "oci"

DEFAULT_SIMPLESTREAMS_SERVER = "https://d14dnvi2l3tc5t.cloudfront.net"

HAPROXY_OCI_SERVER = "https://ghcr.io"
HAPROXY_OCI_ALIAS = "lxc/cluster-api-provider-incus/haproxy:v20230606-42a2262b"


@dataclass(frozen=True)
class Image:
    """Source of an instance image."""

    protocol: str = ""
    server: str = ""
    alias: str = ""
    fingerprint: str = ""

    @property
    def is_zero(self) -> bool:
        return not (self.protocol or self.server or self.alias or self.fingerprint)


@dataclass(frozen=True)
class LaunchOptions:
    """Options for launching an instance.

    Every ``with_*`` method returns a new object and leaves the original alone.
    """

    instance_type: str = ""
    image: Image = field(default_factory=Image)
    profiles: tuple[str, ...] = ()
    flavor: str = ""
    config: dict[str, str] = field(default_factory=dict)
    devices: dict[str, dict[str, str]] = field(default_factory=dict)
    symlinks: dict[str, str] = field(default_factory=dict)
    create_files: dict[str, str] = field(default_factory=dict)
    instance_templates: dict[str, str] = field(default_factory=dict)

    def with_instance_type(self, instance_type: str) -> LaunchOptions:
        """Set the instance type; an empty value keeps the current one."""
        if not instance_type:
            return self
        return replace(self, instance_type=instance_type)

    def with_image(self, image: Image) -> LaunchOptions:
        """Set the image source; an empty image keeps the current one."""
        if image.is_zero:
            return self
        return replace(self, image=image)

    def with_profiles(self, profiles) -> LaunchOptions:
        """Append profiles to apply to the instance."""
        return replace(self, profiles=self.profiles + tuple(profiles or ()))

    def with_flavor(self, flavor: str) -> LaunchOptions:
        """Set the instance flavor; an empty value keeps the current one."""
        if not flavor:
            return self
        return replace(self, flavor=flavor)

    def with_config(self, config: Mapping[str, str] | None) -> LaunchOptions:
        """Merge instance configuration keys, later values winning."""
        return replace(self, config={**self.config, **(config or {})})

    def with_devices(
        self, devices: Mapping[str, Mapping[str, str]] | None
    ) -> LaunchOptions:
        """Add devices, replacing any device of the same name."""
        merged = {name: dict(cfg) for name, cfg in self.devices.items()}
        merged.update({name: dict(cfg) for name, cfg in (devices or {}).items()})
        return replace(self, devices=merged)

    def with_symlinks(self, symlinks: Mapping[str, str] | None) -> LaunchOptions:
        """Add symlinks (path to target) to create in the instance."""
        return replace(self, symlinks={**self.symlinks, **(symlinks or {})})

    def with_create_files(self, files: Mapping[str, str] | None) -> LaunchOptions:
        """Add files (path to content) to create in the instance."""
        return replace(self, create_files={**self.create_files, **(files or {})})

    def with_instance_templates(
        self, templates: Mapping[str, str] | None
    ) -> LaunchOptions:
        """Add files (path to template) rendered into the instance on launch."""
        return replace(
            self, instance_templates={**self.instance_templates, **(templates or {})}
        )


def haproxy_lxc_launch_options() -> LaunchOptions:
    """Launch options for an LXC haproxy load balancer container."""
    return (
        LaunchOptions()
        .with_instance_type(CONTAINER)
        .with_image(
            Image(
                protocol=SIMPLESTREAMS,
                server=DEFAULT_SIMPLESTREAMS_SERVER,
                alias="haproxy",
            )
        )
    )


def haproxy_oci_launch_options() -> LaunchOptions:
    """Launch options for an OCI haproxy load balancer container."""
    return (
        LaunchOptions()
        .with_instance_type(CONTAINER)
        .with_image(Image(protocol=OCI, server=HAPROXY_OCI_SERVER, alias=HAPROXY_OCI_ALIAS))
        # Only "/init" style entrypoints avoid the injected PID 1 init process.
        .with_symlinks({"/init": "/usr/sbin/haproxy"})
        # Running through /init lets SIGUSR2 reach the haproxy workers.
        .with_config(
            {"oci.entrypoint": "/init -W -db -f /usr/local/etc/haproxy/haproxy.cfg"}
        )
        # The image has no /etc/environment, which later steps expect.
        .with_create_files({"/etc/environment": ""})
    )