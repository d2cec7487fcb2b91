"""Load balancer configuration, launch options, machine helpers and a local simplestreams index for Incus/LXD Kubernetes clusters."""

__version__ = "0.1.0"