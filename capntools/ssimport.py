"""Importing container or virtual machine images into a simplestreams index."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
import zlib
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator

from capntools.launch import CONTAINER, VIRTUAL_MACHINE
from capntools.sscontainer import ImportError_, import_container_tarball
from capntools.ssindex import Index
from capntools.ssvm import import_virtual_machine_tarball

log = logging.getLogger(__name__)


def _open_zip(path: str) -> zipfile.ZipFile | None:
    try:
        return zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError):
        return None


def _extract_single_tarball(archive: zipfile.ZipFile) -> tuple[str, str] | None:
    entries = archive.infolist()
    if len(entries) != 1 or not entries[0].filename.endswith(".tar.gz"):
        return None
    directory = tempfile.mkdtemp()
    extracted = os.path.join(directory, "image.tar.gz")
    try:
        with archive.open(entries[0]) as source, open(extracted, "wb") as target:
            shutil.copyfileobj(source, target)
    except (OSError, zipfile.BadZipFile, zlib.error) as exc:
        shutil.rmtree(directory, ignore_errors=True)
        raise ImportError_(
            f"failed to read unified tarball from zip file: {exc}"
        ) from exc
    return directory, extracted


@contextmanager
def extract_unified_tarball_from_zip(
    path: str | os.PathLike[str],
) -> Iterator[str | None]:
    """Yield the unified tarball held in a ``.zip`` file, or None.

    CI artifacts arrive as a zip holding a single ``.tar.gz``; that tarball is
    extracted into a temporary directory removed on exit. Anything else yields
    None.
    """
    path_str = os.fspath(path)
    archive = _open_zip(path_str) if path_str.endswith(".zip") else None
    if archive is None:
        yield None
        return
    with archive:
        extraction = _extract_single_tarball(archive)
    if extraction is None:
        yield None
        return
    directory, extracted = extraction
    try:
        yield extracted
    finally:
        shutil.rmtree(directory, ignore_errors=True)


def import_image(
    index: Index,
    image_type: str,
    image_path: str | os.PathLike[str],
    aliases: Iterable[str] | None,
    incus: bool,
    lxd: bool,
) -> None:
    """Import a container or virtual-machine image into the index."""
    with ExitStack() as stack:
        try:
            tarball = stack.enter_context(extract_unified_tarball_from_zip(image_path))
        except ImportError_ as exc:
            raise ImportError_(
                f"failed to extract unified tarball from archive: {exc}"
            ) from exc
        if tarball is not None:
            log.info(
                "Detected zip archive %s with unified tarball image %s",
                image_path,
                tarball,
            )
            image_path = tarball

        if image_type == CONTAINER:
            import_container_tarball(index, image_path, aliases, incus, lxd)
        elif image_type == VIRTUAL_MACHINE:
            import_virtual_machine_tarball(index, image_path, aliases, incus, lxd)
        else:
            raise ImportError_(f'unknown image type "{image_type}"')