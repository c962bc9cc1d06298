"""CLI commands for ScriptIt.

This package contains the implementation of CLI commands:
    - init: Scaffold a project
    - exec_: Execute a single script
    - run: List scripts or start the interactive session
    - version: Show version information
"""
