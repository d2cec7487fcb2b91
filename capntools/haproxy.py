"""HAProxy configuration used for the cluster load balancer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import jinja2

# Upper bound, in seconds, for a single load balancer reconfiguration.
LOAD_BALANCER_RECONFIGURE_TIMEOUT = 30.0

DEFAULT_HAPROXY_TEMPLATE = """# generated by kind
global
  log /dev/log local0
  log /dev/log local1 notice
  daemon
  # limit memory usage to approximately 18 MB
  maxconn 100000

# resolvers entry is removed, the instance addresses are configured on the backends instead

defaults
  log global
  mode tcp
  option dontlognull
  timeout connect 5000
  timeout client 50000
  timeout server 50000
  # allow to boot despite dns don't resolve backends
  default-server init-addr none

frontend stats
  mode http
  bind *:8404
  stats enable
  stats uri /stats
  stats refresh 1s
  stats admin if TRUE

frontend control-plane
  bind *:{{ frontend_control_plane_port }}
  {% if ipv6 -%}
  bind :::{{ frontend_control_plane_port }};
  {%- endif %}
  default_backend kube-apiservers

backend kube-apiservers
  option httpchk GET /healthz
  {% for server, backend in backend_servers|dictsort(true) %}
  server {{ server }} {{ join_host_port(backend.address, backend_control_plane_port) }} weight {{ backend.weight }} check check-ssl verify none
  {%- endfor %}
"""


class TemplateError(Exception):
    """Raised when a configuration template cannot be parsed or rendered."""


@dataclass(frozen=True)
class BackendServer:
    """A load balancer backend."""

    address: str
    weight: int = 100


@dataclass
class ConfigData:
    """Values supplied to the load balancer configuration template."""

    frontend_control_plane_port: str = "6443"
    backend_control_plane_port: str = "6443"
    backend_servers: dict[str, BackendServer] = field(default_factory=dict)
    ipv6: bool = False


def join_host_port(host: Any, port: Any) -> str:
    """Combine host and port into "host:port", bracketing IPv6 hosts."""
    host = str(host)
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


_ENVIRONMENT = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)
_ENVIRONMENT.globals["join_host_port"] = join_host_port


def _render(template_source: str, context: Mapping[str, Any]) -> bytes:
    try:
        template = _ENVIRONMENT.from_string(template_source)
    except jinja2.TemplateSyntaxError as exc:
        raise TemplateError(f"failed to parse config template: {exc}") from exc
    try:
        return template.render(dict(context)).encode("utf-8")
    except (jinja2.TemplateError, TypeError, ValueError) as exc:
        raise TemplateError(f"error executing config template: {exc}") from exc


def render_haproxy_configuration(data: ConfigData, config_template: str) -> bytes:
    """Render the load balancer configuration from a template and its data."""
    return _render(
        config_template,
        {
            "frontend_control_plane_port": data.frontend_control_plane_port,
            "backend_control_plane_port": data.backend_control_plane_port,
            "backend_servers": data.backend_servers,
            "ipv6": data.ipv6,
        },
    )