"""Project scope rules for discovered pages."""

from .scope import (
    PROJECT_MARKERS,
    filter_pages_to_project,
    is_supported_url,
    number_pages,
    project_prefix,
)

__all__ = [
    "PROJECT_MARKERS",
    "filter_pages_to_project",
    "is_supported_url",
    "number_pages",
    "project_prefix",
]
