"""Script discovery.

Walks the scripts directory recursively and returns every Python script that
is not hidden by an exclusion pattern. Exclusion patterns are globs evaluated
against the entry's path relative to the scripts directory:

    - Dotfiles are matched like any other name
    - ``*`` and ``?`` never cross ``/``; a ``**`` component spans zero or
      more directories, so ``lib/**/internal.py`` also hides
      ``lib/internal.py``
    - A pattern without ``/`` is tried against the entry's base name,
      so ``_*.py`` hides ``_internal.py`` at any depth
    - ``dir/**`` matches ``dir`` itself, so the directory is pruned with its
      whole subtree

Symlinked directories are not followed.

Example configuration:
    exclude_patterns:
      - "helpers/**"
      - "*.helper.py"
      - "_*"

Classes:
    - ExcludeFilter: Decides whether a relative path is excluded
    - ScriptSummary: Description of a script for listings

Functions:
    - discover_scripts: Recursively collect script files
    - describe_script: Load a script and summarize its shape
"""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import structlog

from scriptit.core.executor import find_lifecycle_hooks, load_script_module

logger = structlog.get_logger()

SCRIPT_EXTENSIONS: frozenset[str] = frozenset({".py"})

# Files and directories that are never scripts
IGNORED_NAMES: frozenset[str] = frozenset({"__init__.py", "__pycache__"})


class ExcludeFilter:
    """Filters script-tree entries based on exclude glob patterns."""

    def __init__(self, exclude_patterns: Iterable[str] | None = None) -> None:
        """Initialize the filter.

        Args:
            exclude_patterns: Glob patterns for entries to exclude.
        """
        self.exclude_patterns = [p for p in (exclude_patterns or []) if p]

    @classmethod
    def _match_parts(cls, path_parts: tuple[str, ...], pattern_parts: tuple[str, ...]) -> bool:
        """Match path components against pattern components.

        ``*`` and ``?`` stay within one component; ``**`` spans zero or more.
        """
        if not pattern_parts:
            return not path_parts

        head, rest = pattern_parts[0], pattern_parts[1:]
        if head == "**":
            return any(cls._match_parts(path_parts[index:], rest) for index in range(len(path_parts) + 1))

        if not path_parts:
            return False
        return fnmatch.fnmatchcase(path_parts[0], head) and cls._match_parts(path_parts[1:], rest)

    @classmethod
    def _matches_pattern(cls, relative_path: PurePosixPath, pattern: str) -> bool:
        """Check if a relative path matches a single glob pattern.

        Args:
            relative_path: Entry path relative to the scripts directory.
            pattern: The glob pattern to match against.

        Returns:
            True if the path matches the pattern.
        """
        pattern = pattern.removeprefix("./").rstrip("/")

        # Match-base: slash-less patterns apply to the final component
        if "/" not in pattern and pattern != "**":
            return fnmatch.fnmatchcase(relative_path.name, pattern)

        pattern_parts = tuple(part for part in pattern.split("/") if part)
        return cls._match_parts(relative_path.parts, pattern_parts)

    def excludes(self, relative_path: PurePosixPath) -> bool:
        """Check if an entry is hidden by any exclude pattern.

        Args:
            relative_path: Entry path relative to the scripts directory.

        Returns:
            True if the entry (and, for directories, its subtree) is excluded.
        """
        for pattern in self.exclude_patterns:
            if self._matches_pattern(relative_path, pattern):
                logger.debug(
                    "discovery_entry_excluded",
                    path=relative_path.as_posix(),
                    pattern=pattern,
                )
                return True
        return False


def _is_script_file(name: str) -> bool:
    """Check if a file name looks like a runnable script."""
    if name in IGNORED_NAMES:
        return False
    return os.path.splitext(name)[1] in SCRIPT_EXTENSIONS


def _walk(
    directory: Path,
    base_dir: Path,
    exclude_filter: ExcludeFilter,
) -> list[Path]:
    """Collect scripts under ``directory``, pruning excluded subtrees."""
    found: list[Path] = []

    try:
        with os.scandir(directory) as entries:
            children = list(entries)
    except OSError as e:
        logger.warning("discovery_read_failed", directory=str(directory), error=str(e))
        return found

    for entry in children:
        entry_path = Path(entry.path)
        relative_path = PurePosixPath(entry_path.relative_to(base_dir).as_posix())

        if exclude_filter.excludes(relative_path):
            continue

        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file()
        except OSError as e:
            logger.warning("discovery_stat_failed", path=entry.path, error=str(e))
            continue

        if is_dir:
            if entry.name in IGNORED_NAMES:
                continue
            found.extend(_walk(entry_path, base_dir, exclude_filter))
        elif is_file and _is_script_file(entry.name):
            found.append(entry_path)

    return found


def discover_scripts(
    base_dir: str | Path,
    exclude_patterns: Iterable[str] | None = None,
) -> list[Path]:
    """Recursively discover script files under ``base_dir``.

    Unreadable subdirectories are logged and contribute no files; a missing
    base directory yields an empty list.

    Args:
        base_dir: The scripts directory.
        exclude_patterns: Glob patterns relative to ``base_dir``.

    Returns:
        Sorted list of absolute script paths.
    """
    base = Path(base_dir).expanduser().resolve()
    if not base.is_dir():
        logger.error("discovery_base_missing", directory=str(base))
        return []

    exclude_filter = ExcludeFilter(exclude_patterns)
    scripts = sorted(_walk(base, base, exclude_filter))

    logger.debug("discovery_completed", directory=str(base), scripts=len(scripts))
    return scripts


@dataclass
class ScriptSummary:
    """Shape of a script, as shown in listings.

    Attributes:
        path: Absolute script path.
        entry_points: Main-phase functions the script defines, in priority
            order (``default`` before ``execute``).
        hooks: Lifecycle hooks the script defines (``tearUp``, ``tearDown``).
        description: The script's ``description`` attribute, if any.
        error: Load error message, if the script could not be loaded.
    """

    path: Path
    entry_points: list[str]
    hooks: list[str]
    description: str | None = None
    error: str | None = None

    @property
    def function_info(self) -> str:
        """Return a one-line description of the script's functions."""
        if self.error is not None:
            return "[not loadable]"
        if not self.entry_points:
            info = "[no valid function]"
        else:
            info = f"[{' + '.join(self.entry_points)}]"
        if self.hooks:
            info += f" + {'+'.join(self.hooks)}"
        return info


def describe_script(script_path: str | Path) -> ScriptSummary:
    """Load a script and summarize its entry points and hooks.

    Load failures are reported in the summary rather than raised.

    Args:
        script_path: Path to the script.

    Returns:
        A ScriptSummary for the script.
    """
    path = Path(script_path).resolve()
    try:
        module = load_script_module(path)
    except Exception as e:
        return ScriptSummary(path=path, entry_points=[], hooks=[], error=str(e))

    hooks = find_lifecycle_hooks(module)
    entry_points = [name for name in ("default", "execute") if name in hooks]
    lifecycle = [name for name in ("tearUp", "tearDown") if name in hooks]

    description = getattr(module, "description", None)
    return ScriptSummary(
        path=path,
        entry_points=entry_points,
        hooks=lifecycle,
        description=description if isinstance(description, str) else None,
    )
