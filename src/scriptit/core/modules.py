"""Fresh module loading for script and configuration files.

Scripts and Python config files are loaded by path rather than by dotted
module name, and they must reflect the file contents at the moment of the
call. Each load goes through ``importlib`` with a source loader that always
compiles from the file on disk, into a brand new module object whose name
carries a per-call unique suffix. Nothing is cached: the module never stays
in ``sys.modules`` and no bytecode cache is read or written.

Classes:
    - FreshSourceLoader: Source loader that bypasses the bytecode cache

Functions:
    - load_fresh_module: Load a Python source file into a new module object
"""

import importlib.machinery
import importlib.util
import itertools
import re
import sys
import time
from pathlib import Path
from types import CodeType, ModuleType

_load_counter = itertools.count(1)

_UNSAFE_NAME_CHARS = re.compile(r"[^0-9a-zA-Z_]")


class FreshSourceLoader(importlib.machinery.SourceFileLoader):
    """SourceFileLoader that compiles from source on every load.

    The stock loader trusts ``__pycache__`` when the source mtime and size
    match, which hides edits made within the same second.
    """

    def get_code(self, fullname: str) -> CodeType:
        return self.source_to_code(self.get_data(self.path), self.path)


def _unique_module_name(path: Path, prefix: str) -> str:
    """Build a module name that is unique for this load call."""
    stem = _UNSAFE_NAME_CHARS.sub("_", path.stem)
    return f"{prefix}_{stem}_{time.time_ns()}_{next(_load_counter)}"


def load_fresh_module(path: str | Path, prefix: str = "scriptit_module") -> ModuleType:
    """Load a Python source file as a new, uncached module.

    The module is registered in ``sys.modules`` only while its body executes
    (so that dataclasses, pickling helpers and relative lookups inside the
    script behave), then removed again.

    Args:
        path: Path to the ``.py`` file.
        prefix: Prefix for the generated module name.

    Returns:
        The executed module object.

    Raises:
        FileNotFoundError: If the file does not exist.
        SyntaxError: If the file does not compile.
        Exception: Anything raised by the module body.
    """
    path = Path(path).resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Module file not found: {path}")

    module_name = _unique_module_name(path, prefix)
    loader = FreshSourceLoader(module_name, str(path))
    spec = importlib.util.spec_from_file_location(module_name, path, loader=loader)
    if spec is None:
        raise ImportError(f"Cannot build an import spec for {path}")

    module = importlib.util.module_from_spec(spec)

    sys.modules[module_name] = module
    try:
        loader.exec_module(module)
    finally:
        sys.modules.pop(module_name, None)

    return module
