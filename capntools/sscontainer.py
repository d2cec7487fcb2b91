"""Importing unified container image tarballs into a simplestreams index."""

from __future__ import annotations

import gzip
import logging
import os
import posixpath
import tarfile
from datetime import datetime
from typing import Any, Iterable

import yaml

from capntools.ssindex import Index
from capntools.ssutil import (
    CONTAINER_FTYPE_INCUS,
    CONTAINER_FTYPE_LXD,
    container_image_info,
    copy_file,
)

log = logging.getLogger(__name__)


class ImportError_(Exception):
    """Raised when an image cannot be imported into the index."""


def _read_metadata(image_path: str | os.PathLike[str]) -> dict[str, Any]:
    try:
        with tarfile.open(image_path, mode="r:gz") as archive:
            for member in archive:
                if member.name != "metadata.yaml":
                    continue
                stream = archive.extractfile(member)
                raw = stream.read() if stream is not None else b""
                try:
                    metadata = yaml.safe_load(raw)
                except yaml.YAMLError as exc:
                    raise ImportError_(
                        f"failed to parse metadata.yaml from image: {exc}"
                    ) from exc
                if metadata is None:
                    return {}
                if not isinstance(metadata, dict):
                    raise ImportError_(
                        "failed to parse metadata.yaml from image: not a mapping"
                    )
                return metadata
    except (tarfile.TarError, gzip.BadGzipFile, EOFError) as exc:
        raise ImportError_(f"failed to read tar.gz archive: {exc}") from exc
    except OSError as exc:
        raise ImportError_(f"failed to open: {exc}") from exc
    return {}


def _version_name(creation_date: Any) -> str:
    return datetime.fromtimestamp(int(creation_date or 0)).strftime("%Y%m%d%H%M")


def import_container_tarball(
    index: Index,
    image_path: str | os.PathLike[str],
    aliases: Iterable[str] | None,
    incus: bool,
    lxd: bool,
) -> None:
    """Add a unified container tarball to the index and copy it into the tree."""
    log.info("Importing container image %s", image_path)
    metadata = _read_metadata(image_path)
    if not metadata.get("architecture"):
        raise ImportError_("no metadata.yaml found for image")

    try:
        info = container_image_info(image_path)
    except OSError as exc:
        raise ImportError_(f"failed to retrieve image information: {exc}") from exc

    properties = metadata.get("properties") or {}
    os_name = str(properties.get("os", ""))
    release = str(properties.get("release", ""))
    variant = str(properties.get("variant", ""))
    arch = str(properties.get("architecture", ""))

    product_name = f"{os_name}:{release}:{variant}:{arch}"
    version_name = _version_name(metadata.get("creation_date"))
    target = posixpath.join(
        "images", os_name, release, arch, f"{info.sha256}.incus_combined.tar.gz"
    )

    log.info("Adding product %s version %s (%s)", product_name, version_name, info)
    if index.add_product_name(product_name):
        log.info("Added product in streams/v1/index.json")

    catalogue = index.products.get("products") or {}
    index.products["products"] = catalogue
    product = catalogue.get(product_name)
    if product is None:
        log.info("Creating product %s", product_name)
        product = {
            "aliases": "",
            "arch": arch,
            "os": os_name,
            "release": release,
            "release_title": release,
            "variant": variant,
            "versions": {version_name: {}},
        }

    alias_list = list(aliases or ())
    if alias_list:
        log.info("Setting product %s aliases %s", product_name, alias_list)
        product["aliases"] = ",".join(alias_list)

    versions = product.get("versions") or {}
    product["versions"] = versions
    version = versions.get(version_name) or {}
    items = version.get("items") or {}
    version["items"] = items

    for enabled, ftype in ((incus, CONTAINER_FTYPE_INCUS), (lxd, CONTAINER_FTYPE_LXD)):
        if enabled:
            log.info("Adding product version item %s at %s", ftype, target)
            items[ftype] = {
                "ftype": ftype,
                "sha256": info.sha256,
                "size": info.size,
                "path": target,
            }

    versions[version_name] = version
    catalogue[product_name] = product

    destination = index.root.joinpath(*target.split("/"))
    log.info("Copying image file %s to %s", image_path, destination)
    try:
        copy_file(image_path, destination)
    except OSError as exc:
        raise ImportError_(f"failed to copy image file: {exc}") from exc

    log.info("Updating streams/v1/index.json and streams/v1/images.json")
    try:
        index.save()
    except (OSError, TypeError, ValueError) as exc:
        raise ImportError_(f"failed to write index files: {exc}") from exc