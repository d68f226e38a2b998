"""
Module entry point: ``python -m treemirror``.

Author: TreeMirror Project
License: MIT
"""

import sys

from .cli import main

sys.exit(main())
