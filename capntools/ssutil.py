"""Hashing and copying helpers for a local simplestreams index."""

from __future__ import annotations

import hashlib
import os
import shutil
from dataclasses import dataclass

CONTAINER_FTYPE_INCUS = "incus_combined.tar.gz"
CONTAINER_FTYPE_LXD = "lxd_combined.tar.gz"

VM_METADATA_FTYPE_INCUS = "incus.tar.xz"
VM_METADATA_FTYPE_LXD = "lxd.tar.xz"

VM_ROOTFS_FTYPE_INCUS = "disk-kvm.img"
VM_ROOTFS_FTYPE_LXD = "disk1.img"

_CHUNK_SIZE = 1 << 20


@dataclass(frozen=True)
class ContainerImageInfo:
    """Size and SHA-256 of a unified container image tarball."""

    sha256: str
    size: int


@dataclass(frozen=True)
class VirtualMachineImageInfo:
    """Sizes and SHA-256 sums of a split virtual machine image."""

    meta_size: int
    meta_sha256: str
    root_size: int
    root_sha256: str
    combined_sha256: str


def container_image_info(path: str | os.PathLike[str]) -> ContainerImageInfo:
    """Return the size and SHA-256 sum of the file at ``path``."""
    size = os.stat(path).st_size
    digest = hashlib.sha256()
    with open(path, "rb") as stream:
        for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return ContainerImageInfo(sha256=digest.hexdigest(), size=size)


def virtual_machine_image_info(metadata: bytes, rootfs: bytes) -> VirtualMachineImageInfo:
    """Return sizes and sums of the metadata, the rootfs and both combined."""
    digest = hashlib.sha256(metadata)
    meta_sha256 = digest.hexdigest()
    digest.update(rootfs)
    combined_sha256 = digest.hexdigest()
    return VirtualMachineImageInfo(
        meta_size=len(metadata),
        meta_sha256=meta_sha256,
        root_size=len(rootfs),
        root_sha256=hashlib.sha256(rootfs).hexdigest(),
        combined_sha256=combined_sha256,
    )


def copy_file(source: str | os.PathLike[str], destination: str | os.PathLike[str]) -> None:
    """Copy ``source`` to ``destination``, creating parent directories."""
    parent = os.path.dirname(os.fspath(destination))
    if parent:
        os.makedirs(parent, mode=0o755, exist_ok=True)
    shutil.copyfile(source, destination)