# waypoint/cli/commands: Command modules for the Waypoint CLI.
#
# Each module in this package provides one or more CLI commands.

from .evaluate import evaluate, history
from .presets import checkpoints, presets
from .validate import validate

__all__ = [
    # evaluate.py
    "evaluate",
    "history",
    # presets.py
    "checkpoints",
    "presets",
    # validate.py
    "validate",
]
