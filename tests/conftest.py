"""
Shared Test Fixtures

Author: TreeMirror Project
License: MIT
"""

import logging

import pytest

from treemirror.utils.logger import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo handlers installed by setup_logging during a test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_tree():
    """Create files from a ``{relative path: content}`` mapping under a root."""
    def _write(root, files):
        root.mkdir(parents=True, exist_ok=True)
        for name, content in files.items():
            path = root / name
            if content is None:
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content)
        return root
    return _write


@pytest.fixture
def read_tree():
    """Map every file under a root to its text, skipping hash cache files."""
    def _read(root):
        return {
            path.relative_to(root).as_posix(): path.read_text()
            for path in sorted(root.rglob("*"))
            if path.is_file() and path.name != ".md5"
        }
    return _read
