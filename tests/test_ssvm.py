import hashlib
import io
import tarfile

import pytest

from capntools.sscontainer import ImportError_
from capntools.ssindex import get_or_create_index
from capntools.ssvm import import_virtual_machine_tarball

METADATA = b"""architecture: x86_64
creation_date: 1700000000
properties:
  os: ubuntu
  release: noble
  variant: kubeadm
  architecture: amd64
"""
PRODUCT = "ubuntu:noble:kubeadm:amd64"
ROOTFS = b"qcow2-rootfs-bytes" * 10
TEMPLATE = b"{{ container.name }}\n"


def make_tar_gz(path, entries):
    with tarfile.open(path, "w:gz") as archive:
        for name, content in entries:
            info = tarfile.TarInfo(name)
            if content is None:
                info.type = tarfile.DIRTYPE
                archive.addfile(info)
            else:
                info.size = len(content)
                archive.addfile(info, io.BytesIO(content))
    return path


def full_image(tmp_path):
    return make_tar_gz(
        tmp_path / "image.tar.gz",
        [
            ("metadata.yaml", METADATA),
            ("templates", None),
            ("templates/hostname.tpl", TEMPLATE),
            ("rootfs.img", ROOTFS),
        ],
    )


def only_version(index):
    versions = index.products["products"][PRODUCT]["versions"]
    assert len(versions) == 1
    return next(iter(versions.items()))


def test_rootfs_is_written_and_listed(tmp_path):
    index = get_or_create_index(tmp_path / "root")
    import_virtual_machine_tarball(index, full_image(tmp_path), [], True, False)
    _, version = only_version(index)
    item = version["items"]["disk-kvm.img"]
    assert item["path"].startswith("images/ubuntu/noble/amd64/")
    assert item["size"] == len(ROOTFS)
    written = (tmp_path / "root" / item["path"]).read_bytes()
    assert written == ROOTFS
    assert item["sha256"] == hashlib.sha256(written).hexdigest()


def test_metadata_archive_keeps_metadata_and_templates(tmp_path):
    index = get_or_create_index(tmp_path / "root")
    import_virtual_machine_tarball(index, full_image(tmp_path), [], True, False)
    _, version = only_version(index)
    item = version["items"]["incus.tar.xz"]
    written = (tmp_path / "root" / item["path"]).read_bytes()
    assert item["sha256"] == hashlib.sha256(written).hexdigest()
    with tarfile.open(fileobj=io.BytesIO(written), mode="r:gz") as archive:
        names = archive.getnames()
        assert archive.extractfile("metadata.yaml").read() == METADATA
        assert archive.extractfile("templates/hostname.tpl").read() == TEMPLATE
    assert "rootfs.img" not in names


def test_combined_sum_covers_metadata_then_rootfs(tmp_path):
    index = get_or_create_index(tmp_path / "root")
    import_virtual_machine_tarball(index, full_image(tmp_path), [], True, True)
    _, version = only_version(index)
    meta_item = version["items"]["incus.tar.xz"]
    meta = (tmp_path / "root" / meta_item["path"]).read_bytes()
    expected = hashlib.sha256(meta + ROOTFS).hexdigest()
    assert meta_item["combined_disk-kvm-img_sha256"] == expected
    assert version["items"]["lxd.tar.xz"]["combined_disk1-img_sha256"] == expected


def test_version_name_is_a_minute_stamp(tmp_path):
    index = get_or_create_index(tmp_path / "root")
    import_virtual_machine_tarball(index, full_image(tmp_path), [], True, False)
    name, _ = only_version(index)
    assert len(name) == 12 and name.isdigit()


@pytest.mark.parametrize(
    "incus, lxd, expected",
    [
        (True, False, {"disk-kvm.img", "incus.tar.xz"}),
        (False, True, {"disk1.img", "lxd.tar.xz"}),
        (True, True, {"disk-kvm.img", "incus.tar.xz", "disk1.img", "lxd.tar.xz"}),
    ],
)
def test_item_types_follow_flags(tmp_path, incus, lxd, expected):
    index = get_or_create_index(tmp_path / "root")
    import_virtual_machine_tarball(index, full_image(tmp_path), None, incus, lxd)
    _, version = only_version(index)
    assert set(version["items"]) == expected


def test_index_is_saved_and_aliases_set(tmp_path):
    index = get_or_create_index(tmp_path / "root")
    import_virtual_machine_tarball(
        index, full_image(tmp_path), ["kubeadm/v1.33.0", "kubeadm/v1.33"], True, False
    )
    reloaded = get_or_create_index(tmp_path / "root")
    assert PRODUCT in reloaded.index["index"]["images"]["products"]
    product = reloaded.products["products"][PRODUCT]
    assert product["aliases"].split(",") == ["kubeadm/v1.33.0", "kubeadm/v1.33"]
    assert product["os"] == "ubuntu"


def test_missing_rootfs_is_rejected(tmp_path):
    image = make_tar_gz(tmp_path / "image.tar.gz", [("metadata.yaml", METADATA)])
    index = get_or_create_index(tmp_path / "root")
    with pytest.raises(ImportError_, match="no rootfs.img"):
        import_virtual_machine_tarball(index, image, [], True, False)


def test_missing_metadata_is_rejected(tmp_path):
    image = make_tar_gz(tmp_path / "image.tar.gz", [("rootfs.img", ROOTFS)])
    index = get_or_create_index(tmp_path / "root")
    with pytest.raises(ImportError_, match="no metadata.yaml"):
        import_virtual_machine_tarball(index, image, [], True, False)


def test_not_a_gzip_archive(tmp_path):
    image = tmp_path / "image.tar.gz"
    image.write_bytes(b"plain text, not compressed")
    index = get_or_create_index(tmp_path / "root")
    with pytest.raises(ImportError_, match="tar.gz"):
        import_virtual_machine_tarball(index, image, [], True, False)