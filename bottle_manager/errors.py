#!/usr/bin/env python3
"""
Bottle Errors
Typed failures surfaced by the reconciliation engine and its collaborators
"""


class BottleError(Exception):
    """Base class for every failure a bottle command can report"""


class NotFound(BottleError):
    """A manifest or tool definition could not be resolved"""


class BottleNotFound(NotFound):
    def __init__(self, bottle: str):
        self.bottle = bottle
        super().__init__(f"Bottle not found: {bottle}")


class ToolNotFound(NotFound):
    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"Tool not found: {tool}")


class ManifestError(BottleError):
    """A manifest or tool definition was found but could not be parsed"""


class PrerequisitesNotMet(BottleError):
    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Prerequisites not met: {', '.join(self.missing)}")


class InstallError(BottleError):
    """
    Failure to install, register or unregister exactly one item.

    The executor catches these and records them per item; they never abort a plan.
    """

    def __init__(self, item: str, reason: str):
        self.item = item
        self.reason = reason
        super().__init__(f"{item} - {reason}")


class InvalidModeTransition(BottleError):
    """Command not allowed in the bottle's current mode"""


class AlreadyEjected(InvalidModeTransition):
    def __init__(self):
        super().__init__("Already ejected from bottle management")


class NoBottleInstalled(BottleError):
    def __init__(self):
        super().__init__("No bottle installed. Run `bottle install` first.")


class StateCorrupted(BottleError):
    """A state record exists on disk but cannot be parsed"""


class StoreError(BottleError):
    """State could not be written"""


class ValidationError(BottleError):
    pass


class Cancelled(BottleError):
    def __init__(self):
        super().__init__("User cancelled operation")
