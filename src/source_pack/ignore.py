"""
Inclusion rules for source-pack.

Rules are evaluated on the basename of each path; an excluded directory is pruned by
the walker, so nothing below it is ever tested.
"""

from __future__ import annotations

from .config import PackConfig
from .utils import basename, file_extension

RULE_BUILTIN_DIR = "builtin-dir"
RULE_USER_FILE = "user-file"
RULE_USER_EXT = "user-ext"


class IgnoreFilter:
    """
    Decides whether a path is packed.

    Precedence (first match wins):
    1. a directory named after an enabled built-in (`.git`, `build`, Gradle dirs)
    2. a basename listed in `user_ignore_files` (files and directories)
    3. a file whose extension is listed in `user_ignore_exts`
    4. everything else is included
    """

    def __init__(self, config: PackConfig):
        self._builtin_dirs = config.builtin_ignore_dirs()
        self._files = config.user_ignore_files
        self._exts = config.user_ignore_exts

    def excluded_by(self, relative_path: str, is_dir: bool) -> str | None:
        """
        Return the rule that excludes a path.

        Args:
            relative_path: Root-relative path (either separator style)
            is_dir: Whether the path is a directory

        Returns:
            The rule name, or None if the path is included
        """
        name = basename(relative_path)

        if is_dir and name in self._builtin_dirs:
            return RULE_BUILTIN_DIR

        if name in self._files:
            return RULE_USER_FILE

        if not is_dir:
            ext = file_extension(name)
            if ext and ext in self._exts:
                return RULE_USER_EXT

        return None

    def should_include(self, relative_path: str, is_dir: bool) -> bool:
        return self.excluded_by(relative_path, is_dir) is None
