"""Structural failures that abort a regeneration pass."""
from __future__ import annotations


class ManifestError(RuntimeError):
    pass


class RegistryError(ManifestError):
    """The registry file exists but cannot be read or parsed."""


class OutputError(ManifestError):
    """A generated file or directory could not be written."""
