"""ScriptIt CLI module.

This module provides the command-line interface for ScriptIt, enabling users to:
    - Scaffold a project with `scriptit init`
    - Run one script with `scriptit exec <path>`
    - Browse and run scripts with `scriptit run` (the default command)
"""
