"""Relay server exceptions."""


class RelayError(Exception):
    """Base class for relay failures."""


class SheetError(RelayError):
    """The spreadsheet could not be authenticated against or read."""
