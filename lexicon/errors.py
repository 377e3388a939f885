#!/usr/bin/env python3
"""
Lexicon error types
Hard failures (InvalidInput, FetchError) surface to callers; the rest resolve
to empty results inside the service layer.
"""


class LexiconError(Exception):
    """Base error for the lexicon system"""
    pass


class InvalidInput(LexiconError):
    """Search term is empty or contains characters other than letters, spaces and hyphens"""
    pass


class FetchError(LexiconError):
    """Network failure, timeout or unexpected status while scraping"""

    def __init__(self, message: str, url: str = None, status: int = None):
        super().__init__(message)
        self.url = url
        self.status = status


class MalformedIdentifier(LexiconError):
    """Identifier that does not parse as a sense/example id"""
    pass
