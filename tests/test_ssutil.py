import hashlib

import pytest

from capntools.ssutil import (
    container_image_info,
    copy_file,
    virtual_machine_image_info,
)


def test_container_image_info_matches_content(tmp_path):
    data = b"unified tarball contents" * 100
    path = tmp_path / "image.tar.gz"
    path.write_bytes(data)
    info = container_image_info(path)
    assert info.size == len(data)
    assert info.sha256 == hashlib.sha256(data).hexdigest()


def test_container_image_info_empty_file(tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    info = container_image_info(path)
    assert info.size == 0
    assert info.sha256 == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_container_image_info_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        container_image_info(tmp_path / "missing")


def test_virtual_machine_image_info_sums(tmp_path):
    metadata = b"metadata archive"
    rootfs = b"qcow2 rootfs bytes"
    info = virtual_machine_image_info(metadata, rootfs)
    assert info.meta_size == len(metadata)
    assert info.root_size == len(rootfs)
    assert info.meta_sha256 == hashlib.sha256(metadata).hexdigest()
    assert info.root_sha256 == hashlib.sha256(rootfs).hexdigest()
    assert info.combined_sha256 == hashlib.sha256(metadata + rootfs).hexdigest()


def test_virtual_machine_meta_sum_agrees_with_file_sum(tmp_path):
    metadata = b"some metadata"
    path = tmp_path / "meta"
    path.write_bytes(metadata)
    info = virtual_machine_image_info(metadata, b"root")
    assert info.meta_sha256 == container_image_info(path).sha256
    assert info.combined_sha256 != info.meta_sha256


def test_virtual_machine_empty_rootfs_combined_equals_meta():
    info = virtual_machine_image_info(b"meta", b"")
    assert info.combined_sha256 == info.meta_sha256


def test_copy_file_creates_directories(tmp_path):
    source = tmp_path / "src.bin"
    source.write_bytes(b"payload")
    destination = tmp_path / "a" / "b" / "dst.bin"
    copy_file(source, destination)
    assert destination.read_bytes() == b"payload"


def test_copy_file_truncates_existing(tmp_path):
    source = tmp_path / "src.bin"
    source.write_bytes(b"short")
    destination = tmp_path / "dst.bin"
    destination.write_bytes(b"a much longer previous content")
    copy_file(source, destination)
    assert destination.read_bytes() == b"short"


def test_copy_file_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        copy_file(tmp_path / "missing", tmp_path / "out")