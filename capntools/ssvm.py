"""Importing unified virtual machine image tarballs into a simplestreams index."""

from __future__ import annotations

import gzip
import io
import logging
import os
import posixpath
import tarfile
from typing import Any, Iterable

import yaml

from capntools.sscontainer import ImportError_, _version_name
from capntools.ssindex import Index
from capntools.ssutil import (
    VM_METADATA_FTYPE_INCUS,
    VM_METADATA_FTYPE_LXD,
    VM_ROOTFS_FTYPE_INCUS,
    VM_ROOTFS_FTYPE_LXD,
    virtual_machine_image_info,
)

log = logging.getLogger(__name__)

COMBINED_KEY_INCUS = "combined_disk-kvm-img_sha256"
COMBINED_KEY_LXD = "combined_disk1-img_sha256"


def _read_member(archive: tarfile.TarFile, member: tarfile.TarInfo) -> bytes:
    stream = archive.extractfile(member)
    return stream.read() if stream is not None else b""


def _parse_metadata(raw: bytes) -> dict[str, Any]:
    try:
        metadata = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ImportError_(f"failed to parse metadata.yaml from image: {exc}") from exc
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise ImportError_("failed to parse metadata.yaml from image: not a mapping")
    return metadata


def _split_image(
    image_path: str | os.PathLike[str],
) -> tuple[dict[str, Any], bytes, bytes]:
    """Return the parsed metadata, the metadata archive and the rootfs of an image."""
    buffer = io.BytesIO()
    metadata: dict[str, Any] = {}
    rootfs = b""
    try:
        with tarfile.open(image_path, mode="r:gz") as source, gzip.GzipFile(
            fileobj=buffer, mode="wb", mtime=0
        ) as compressed, tarfile.open(fileobj=compressed, mode="w") as out:
            for member in source:
                if member.name == "metadata.yaml":
                    raw = _read_member(source, member)
                    metadata = _parse_metadata(raw)
                    out.addfile(member, io.BytesIO(raw))
                elif member.name.startswith("templates/"):
                    content = source.extractfile(member) if member.isreg() else None
                    out.addfile(member, content)
                elif member.name == "rootfs.img":
                    rootfs = _read_member(source, member)
    except (tarfile.TarError, gzip.BadGzipFile, EOFError) as exc:
        raise ImportError_(f"failed to read tar.gz archive: {exc}") from exc
    except OSError as exc:
        raise ImportError_(f"failed to open: {exc}") from exc
    return metadata, buffer.getvalue(), rootfs


def _product_entry(
    index: Index, product_name: str, version_name: str, properties: dict[str, Any]
) -> dict[str, Any]:
    catalogue = index.products.get("products") or {}
    index.products["products"] = catalogue
    product = catalogue.get(product_name)
    if product is None:
        log.info("Creating product %s", product_name)
        release = str(properties.get("release", ""))
        product = {
            "aliases": "",
            "arch": str(properties.get("architecture", "")),
            "os": str(properties.get("os", "")),
            "release": release,
            "release_title": release,
            "variant": str(properties.get("variant", "")),
            "versions": {version_name: {}},
        }
    catalogue[product_name] = product
    return product


def import_virtual_machine_tarball(
    index: Index,
    image_path: str | os.PathLike[str],
    aliases: Iterable[str] | None,
    incus: bool,
    lxd: bool,
) -> None:
    """Split a unified VM tarball into metadata and rootfs and add both to the index."""
    log.info("Importing virtual-machine image %s", image_path)
    metadata, meta_archive, rootfs = _split_image(image_path)

    if not meta_archive:
        raise ImportError_("no metadata found in image")
    if not rootfs:
        raise ImportError_("no rootfs.img found in image")
    if not metadata.get("architecture"):
        raise ImportError_("no metadata.yaml found in image")

    info = virtual_machine_image_info(meta_archive, rootfs)

    properties = metadata.get("properties") or {}
    os_name = str(properties.get("os", ""))
    release = str(properties.get("release", ""))
    variant = str(properties.get("variant", ""))
    arch = str(properties.get("architecture", ""))

    product_name = f"{os_name}:{release}:{variant}:{arch}"
    version_name = _version_name(metadata.get("creation_date"))
    directory = posixpath.join("images", os_name, release, arch)
    metadata_target = posixpath.join(directory, f"{info.meta_sha256}.incus.tar.xz")
    rootfs_target = posixpath.join(directory, f"{info.meta_sha256}.disk-kvm.img")

    try:
        index.root.joinpath(*directory.split("/")).mkdir(
            mode=0o755, parents=True, exist_ok=True
        )
    except OSError as exc:
        raise ImportError_(f"failed to create images directory: {exc}") from exc

    log.info("Adding product %s version %s (%s)", product_name, version_name, info)
    if index.add_product_name(product_name):
        log.info("Added product in streams/v1/index.json")

    product = _product_entry(index, product_name, version_name, properties)

    alias_list = list(aliases or ())
    if alias_list:
        log.info("Setting product %s aliases %s", product_name, alias_list)
        product["aliases"] = ",".join(alias_list)

    versions = product.get("versions") or {}
    product["versions"] = versions
    version = versions.get(version_name) or {}
    items = version.get("items") or {}
    version["items"] = items

    flavours = (
        (incus, VM_ROOTFS_FTYPE_INCUS, VM_METADATA_FTYPE_INCUS, COMBINED_KEY_INCUS),
        (lxd, VM_ROOTFS_FTYPE_LXD, VM_METADATA_FTYPE_LXD, COMBINED_KEY_LXD),
    )
    for enabled, rootfs_ftype, metadata_ftype, combined_key in flavours:
        if not enabled:
            continue
        log.info("Adding rootfs item %s at %s", rootfs_ftype, rootfs_target)
        items[rootfs_ftype] = {
            "ftype": rootfs_ftype,
            "size": info.root_size,
            "path": rootfs_target,
            "sha256": info.root_sha256,
        }
        log.info("Adding metadata item %s at %s", metadata_ftype, metadata_target)
        items[metadata_ftype] = {
            "ftype": metadata_ftype,
            "size": info.meta_size,
            "path": metadata_target,
            "sha256": info.meta_sha256,
            combined_key: info.combined_sha256,
        }

    versions[version_name] = version

    try:
        index.root.joinpath(*rootfs_target.split("/")).write_bytes(rootfs)
    except OSError as exc:
        raise ImportError_(f"failed to write rootfs: {exc}") from exc
    try:
        index.root.joinpath(*metadata_target.split("/")).write_bytes(meta_archive)
    except OSError as exc:
        raise ImportError_(f"failed to write metadata: {exc}") from exc

    log.info("Updating streams/v1/index.json and streams/v1/images.json")
    try:
        index.save()
    except (OSError, TypeError, ValueError) as exc:
        raise ImportError_(f"failed to write index files: {exc}") from exc