"""
Domain errors raised by the paste store and lifecycle engine.
"""


class PasteError(Exception):
    """Base class for paste errors."""


class NotFound(PasteError):
    """Paste is absent, expired, or has used up its views.

    The three cases are deliberately indistinguishable to callers.
    """

    def __init__(self, paste_id: str):
        super().__init__(f"Paste {paste_id} not found")
        self.paste_id = paste_id


class InvalidInput(PasteError):
    """A create request violated a constraint."""


class StoreUnavailable(PasteError):
    """The backing store could not be reached or returned an error."""
