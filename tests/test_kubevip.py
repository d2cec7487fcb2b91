import yaml

from capntools.kubevip import KubeVIPTemplateInput, render_kube_vip_configuration

INPUT = KubeVIPTemplateInput(
    interface="eth0",
    address="10.0.0.10",
    image="registry.example.com/kube-vip:test",
    kubeconfig_path="/etc/kubernetes/admin.conf",
)


def _document():
    return yaml.safe_load(render_kube_vip_configuration(INPUT))


def test_output_is_bytes_with_header():
    output = render_kube_vip_configuration(INPUT)
    assert output.startswith(b"# generated by capn\n")


def test_manifest_metadata():
    doc = _document()
    assert doc["kind"] == "Pod"
    assert doc["metadata"]["name"] == "kube-vip"
    assert doc["metadata"]["namespace"] == "kube-system"


def test_manifest_carries_inputs():
    doc = _document()
    container = doc["spec"]["containers"][0]
    env = {item["name"]: item["value"] for item in container["env"]}
    assert env["vip_interface"] == INPUT.interface
    assert env["address"] == INPUT.address
    assert container["image"] == INPUT.image
    assert doc["spec"]["volumes"][0]["hostPath"]["path"] == INPUT.kubeconfig_path


def test_manifest_fixed_settings():
    doc = _document()
    env = {item["name"]: item["value"] for item in doc["spec"]["containers"][0]["env"]}
    assert env["port"] == "6443"
    assert env["vip_leasename"] == "plndr-cp-lock"
    assert doc["spec"]["hostNetwork"] is True