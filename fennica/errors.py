from __future__ import annotations


class ContentError(Exception):
    """Base class for problems caused by content files."""


class ScanError(ContentError):
    pass


class DuplicateContentError(ScanError):
    pass


class MalformedPostNameError(ScanError):
    pass


class ParseError(ContentError):
    pass


class UnresolvedParentError(ContentError):
    pass


class CycleError(ContentError):
    pass


class InvalidZoomError(ContentError):
    pass


class BrokenLinkError(ContentError):
    pass


class MissingImageError(ContentError):
    pass
