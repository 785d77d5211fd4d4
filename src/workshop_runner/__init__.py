"""workshop-runner: backend of a local coding-workshop runner.

Discovers exercise apps on disk, keeps the playground workspace in sync with
the step a student is working on, supervises per-app dev/test processes and
computes diffs between app variants.
"""

__version__ = "0.1.0"
