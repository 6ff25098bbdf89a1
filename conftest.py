"""Pytest configuration: run the python blocks in docs/ as doctests."""

import os
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any

from sybil import Sybil
from sybil.parsers.markdown import PythonCodeBlockParser, SkipParser

_DOCS_DIR = Path(__file__).parent / "docs"


def documentation_setup(namespace: dict[str, Any]) -> None:
    """Run each document in a fresh temporary directory.

    Examples in the docs write files (e.g. YAML settings); keep them out of
    the source tree.
    """
    tmp = TemporaryDirectory(prefix="nm_engine-docs-")
    namespace["_docs_tmp"] = tmp
    namespace["_docs_cwd"] = Path.cwd()
    os.chdir(tmp.name)


def documentation_teardown(namespace: dict[str, Any]) -> None:
    """Return to the original working directory and remove the temporary one."""
    os.chdir(namespace.pop("_docs_cwd"))
    namespace.pop("_docs_tmp").cleanup()


pytest_collect_file = Sybil(
    parsers=[
        PythonCodeBlockParser(),
        SkipParser(),
    ],
    path=str(_DOCS_DIR),
    pattern="*.md",
    setup=documentation_setup,
    teardown=documentation_teardown,
).pytest()
