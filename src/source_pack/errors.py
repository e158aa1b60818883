"""
Error taxonomy for source-pack.

Fatal errors end a pack run and are reported as a failed `PackResult`; `WalkError`
describes a single skipped entry and never aborts the run.
"""

from __future__ import annotations


class PackError(Exception):
    """Base class for all pack run errors."""

    kind = "pack"


class ConfigError(PackError):
    """Invalid configuration: blank paths, malformed filter lists or config files."""

    kind = "config"


class AcquisitionError(PackError):
    """The source could not be resolved to a readable local directory."""

    kind = "acquisition"


class WalkError(PackError):
    """A single filesystem entry could not be read."""

    kind = "walk"


class EmitError(PackError):
    """The output document could not be written."""

    kind = "emit"
