"""Manifest layer: templates, identity hashing and the job builder."""

from node_collector.manifest.builder import HOSTNAME_LABEL, JobBuilder
from node_collector.manifest.models import JobDescription, JobOptions, ObjectRef, compute_hash
from node_collector.manifest.templates import available_templates, get_template, load_template

__all__ = [
    "HOSTNAME_LABEL",
    "JobBuilder",
    "JobDescription",
    "JobOptions",
    "ObjectRef",
    "available_templates",
    "compute_hash",
    "get_template",
    "load_template",
]
