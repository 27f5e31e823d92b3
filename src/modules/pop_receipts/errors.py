# -*- coding: utf-8 -*-
"""Exceptions raised by the receipt engine.

Parsers never raise on bad shape; they return empty results and the loader
raises ParseError. ValidationError carries the operator-facing reason.
"""


class ReceiptError(Exception):
    """Base class for engine errors."""


class ParseError(ReceiptError, ValueError):
    """A mandatory feed did not have the expected header or shape."""


class ResolutionError(ReceiptError, LookupError):
    """A branch label matched nothing in the ground-truth branch set."""


class ValidationError(ReceiptError, ValueError):
    """A submission precondition failed; the message is shown to the operator."""


class TransportError(ReceiptError, ConnectionError):
    """Network failure talking to the backend."""


class FeedError(TransportError):
    """A mandatory inbound feed could not be fetched."""
