"""KubeVIP static pod manifest for control plane instances."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from capntools.haproxy import _render

DEFAULT_KUBE_VIP_TEMPLATE = """# generated by capn
apiVersion: v1
kind: Pod
metadata:
  name: kube-vip
  namespace: kube-system
spec:
  containers:
  - args:
    - manager
    env:
    - name: vip_arp
      value: "true"
    - name: port
      value: "6443"
    - name: vip_interface
      value: "{{ interface }}"
    - name: vip_cidr
      value: "32"
    - name: cp_enable
      value: "true"
    - name: cp_namespace
      value: kube-system
    - name: vip_ddns
      value: "false"
    - name: svc_enable
      value: "true"
    - name: svc_leasename
      value: plndr-svcs-lock
    - name: svc_election
      value: "true"
    - name: vip_leaderelection
      value: "true"
    - name: vip_leasename
      value: plndr-cp-lock
    - name: vip_leaseduration
      value: "15"
    - name: vip_renewdeadline
      value: "10"
    - name: vip_retryperiod
      value: "2"
    - name: address
      value: "{{ address }}"
    - name: prometheus_server
      value: :2112
    image: "{{ image }}"
    imagePullPolicy: IfNotPresent
    name: kube-vip
    resources: {}
    securityContext:
      capabilities:
        add:
        - NET_ADMIN
        - NET_RAW
    volumeMounts:
    - mountPath: /etc/kubernetes/admin.conf
      name: kubeconfig
  hostNetwork: true
  hostAliases:
  - ip: 127.0.0.1
    hostnames: [kubernetes]
  volumes:
  - hostPath:
      path: {{ kubeconfig_path }}
    name: kubeconfig
status: {}
"""


@dataclass(frozen=True)
class KubeVIPTemplateInput:
    """Values supplied to the KubeVIP manifest template."""

    interface: str
    address: str
    image: str
    kubeconfig_path: str


def render_kube_vip_configuration(template_input: KubeVIPTemplateInput) -> bytes:
    """Render the KubeVIP static pod manifest."""
    return _render(DEFAULT_KUBE_VIP_TEMPLATE, asdict(template_input))