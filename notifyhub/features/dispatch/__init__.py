"""Dispatch engine: destinations, per-call options and result sinks."""

from notifyhub.features.dispatch.dispatcher import Destination, Dispatcher, NotifyResponse
from notifyhub.features.dispatch.options import (
    NotifyOption,
    NotifyOptions,
    with_attachments,
    with_body_format,
    with_tags,
    with_url,
)
from notifyhub.features.dispatch.sink import MemorySink, ResultSink

__all__ = [
    "Destination",
    "Dispatcher",
    "MemorySink",
    "NotifyOption",
    "NotifyOptions",
    "NotifyResponse",
    "ResultSink",
    "with_attachments",
    "with_body_format",
    "with_tags",
    "with_url",
]
