"""
Protocol definition for notification sinks.

Defines the common interface the poll loop uses to hand off new entries.
"""

from typing import Protocol, runtime_checkable

from feed_relay.entry import FeedEntry
from feed_relay.extractor import ExtractedFields


@runtime_checkable
class Notifier(Protocol):
    """
    Protocol defining the interface for notification sinks.

    ``notify`` is fire-and-forget: it must return without waiting for the
    message to be delivered and must never raise delivery errors to the
    caller. Sinks report their own failures through logging.

    The @runtime_checkable decorator allows using isinstance() checks
    against this protocol for structural typing validation.
    """

    def notify(self, entry: FeedEntry, fields: ExtractedFields) -> None:
        """
        Render an entry and dispatch it without awaiting delivery.

        Parameters
        ----------
        entry : FeedEntry
            The new entry.
        fields : ExtractedFields
            Fields extracted from the entry body.
        """
        ...

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for dispatches still in flight.

        Parameters
        ----------
        timeout : float | None
            Maximum number of seconds to wait, or None to wait indefinitely.
        """
        ...

    async def close(self) -> None:
        """
        Close the notifier and release any resources.

        This method should be called when shutting down the application
        to cleanly close connections and free resources.
        """
        ...
