"""A simplestreams index kept in a local directory."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

INDEX_FILE = ("streams", "v1", "index.json")
PRODUCTS_FILE = ("streams", "v1", "images.json")


def _new_index() -> dict[str, Any]:
    return {
        "format": "index:1.0",
        "index": {
            "images": {
                "datatype": "image-downloads",
                "path": "streams/v1/images.json",
                "format": "products:1.0",
                "products": [],
            }
        },
    }


def _new_products() -> dict[str, Any]:
    return {
        "content_id": "images",
        "datatype": "image-downloads",
        "format": "products:1.0",
        "products": {},
    }


def _dump(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


@dataclass
class Index:
    """The stream index and product catalogue of a local simplestreams tree."""

    root_dir: str
    index: dict[str, Any] = field(default_factory=_new_index)
    products: dict[str, Any] = field(default_factory=_new_products)

    @property
    def root(self) -> Path:
        return Path(self.root_dir)

    def add_product_name(self, product_name: str) -> bool:
        """List a product in the images stream; return False if already listed."""
        images = self.index.setdefault("index", {}).setdefault("images", {})
        names = list(images.get("products") or [])
        if product_name in names:
            return False
        names.append(product_name)
        images["products"] = sorted(names)
        return True

    def save(self) -> None:
        """Write streams/v1/index.json and streams/v1/images.json."""
        self.root.joinpath(*INDEX_FILE).write_text(_dump(self.index), encoding="utf-8")
        self.root.joinpath(*PRODUCTS_FILE).write_text(
            _dump(self.products), encoding="utf-8"
        )


def _load(path: Path, default: dict[str, Any]) -> dict[str, Any]:
    relative = "/".join(path.parts[-3:])
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default
    try:
        return json.loads(text)
    except ValueError as exc:
        raise ValueError(f"failed to parse {relative}: {exc}") from exc


def get_or_create_index(root_dir: str | os.PathLike[str] | None) -> Index:
    """Open the simplestreams index under ``root_dir``, creating it if needed.

    An empty ``root_dir`` means the current directory.
    """
    root = Path(root_dir) if root_dir else Path(os.getcwd())
    root.joinpath("streams", "v1").mkdir(mode=0o755, parents=True, exist_ok=True)
    root.joinpath("images").mkdir(mode=0o755, parents=True, exist_ok=True)

    return Index(
        root_dir=str(root),
        index=_load(root.joinpath(*INDEX_FILE), _new_index()),
        products=_load(root.joinpath(*PRODUCTS_FILE), _new_products()),
    )