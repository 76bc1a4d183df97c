"""Exceptions raised while loading the manifest and chapter documents."""


class ReaderError(Exception):
    """Base class for reader failures shown to the user as a status message."""


class FetchError(ReaderError):
    """A document could not be fetched (transport error or non-2xx status)."""


class ParseError(ReaderError):
    """The manifest is not a JSON array of valid chapter entries."""
