"""Aggregate pytest-bdd step definitions for objmox features."""

from .assertions import *  # noqa: F403
from .calls import *  # noqa: F403
from .controller_setup import *  # noqa: F403
from .interception import *  # noqa: F403

# Re-export all imported step definitions so ``from tests.steps import *``
# makes them available to scenario modules during collection.
__all__ = [
    name
    for name in globals()
    if not name.startswith("_") and name != "annotations"
]
