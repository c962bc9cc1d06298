"""Interactive front end for ScriptIt.

This package provides:
    - interactive: The line-based script picker (InteractiveSession)
    - prompter: TyperPrompter, the terminal EnvironmentPrompter
"""
