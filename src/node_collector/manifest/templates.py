"""Resolve job templates by name and decode them."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from node_collector.errors import DecodeError, TemplateError

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".yaml"


def _bundled_dir() -> Any:
    return resources.files("node_collector.manifest") / "templates"


def available_templates(template_dir: str | Path | None = None) -> list[str]:
    """Names of all templates visible from ``template_dir`` and the bundled set."""
    names = {
        entry.name[: -len(TEMPLATE_SUFFIX)]
        for entry in _bundled_dir().iterdir()
        if entry.name.endswith(TEMPLATE_SUFFIX)
    }
    if template_dir:
        names.update(p.stem for p in Path(template_dir).glob(f"*{TEMPLATE_SUFFIX}"))
    return sorted(names)


def get_template(name: str, template_dir: str | Path | None = None) -> str:
    """Return the raw manifest text of template ``name``.

    ``template_dir`` is searched before the templates shipped with the package.
    """
    if not name or "/" in name or "\\" in name or name.startswith("."):
        raise TemplateError(f"invalid template name: {name!r}")
    filename = f"{name}{TEMPLATE_SUFFIX}"
    if template_dir:
        candidate = Path(template_dir) / filename
        if candidate.is_file():
            logger.debug("Using template %s from %s", name, template_dir)
            return candidate.read_text(encoding="utf-8")
    bundled = _bundled_dir() / filename
    if bundled.is_file():
        return bundled.read_text(encoding="utf-8")
    raise TemplateError(f"template {name!r} not found")


def decode_job_manifest(text: str, name: str = "<inline>") -> dict[str, Any]:
    """Parse manifest text into a batch/v1 Job dict."""
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise TemplateError(f"template {name!r} is malformed: {e}") from e
    if not isinstance(doc, dict):
        raise DecodeError(f"template {name!r} is not a mapping")
    if doc.get("kind") != "Job" or not str(doc.get("apiVersion", "")).startswith("batch/"):
        raise DecodeError(
            f"template {name!r} is {doc.get('apiVersion')}/{doc.get('kind')}, expected batch/v1 Job"
        )
    pod_spec = ((doc.get("spec") or {}).get("template") or {}).get("spec")
    if not isinstance(pod_spec, dict):
        raise DecodeError(f"template {name!r} has no spec.template.spec")
    containers = pod_spec.get("containers")
    if not isinstance(containers, list) or not containers or not all(isinstance(c, dict) for c in containers):
        raise DecodeError(f"template {name!r} has no containers")
    doc.setdefault("metadata", {})
    if not isinstance(doc["metadata"], dict):
        raise DecodeError(f"template {name!r} has invalid metadata")
    return doc


def load_template(name: str, template_dir: str | Path | None = None) -> dict[str, Any]:
    """Resolve and decode template ``name``. Returns a fresh dict on every call."""
    return decode_job_manifest(get_template(name, template_dir), name)
