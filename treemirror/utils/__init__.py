"""
Utilities Module

Logging setup and file helpers.

Author: TreeMirror Project
License: MIT
"""
