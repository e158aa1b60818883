"""
Source-Pack: pack a source tree into a single document for LLM prompts.

A local directory or a remote git repository is filtered, optionally compressed and
written as one Markdown or XML document.
"""

__version__ = "0.1.0"

from .config import FileEntry, OutputFormat, OutputMode, PackConfig, PackResult, WalkIssue
from .errors import AcquisitionError, ConfigError, EmitError, PackError, WalkError
from .fetcher import acquire, derive_display_name
from .ignore import IgnoreFilter
from .packer import PackRunner, default_output_path, pack

__all__ = [
    "__version__",
    "AcquisitionError",
    "ConfigError",
    "EmitError",
    "FileEntry",
    "IgnoreFilter",
    "OutputFormat",
    "OutputMode",
    "PackConfig",
    "PackError",
    "PackResult",
    "PackRunner",
    "WalkError",
    "WalkIssue",
    "acquire",
    "default_output_path",
    "derive_display_name",
    "pack",
]
