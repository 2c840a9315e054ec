"""Exceptions for the streams module."""


class StreamClosedError(Exception):
    """Raised when an item or error is added to a closed broadcast source.

    Once a source is closed its listeners have received the completion
    signal, so nothing may be delivered after it.
    """

    pass
