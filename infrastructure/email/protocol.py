"""EmailProvider protocol. Services depend on this, not on a concrete sender."""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_code(
        self, destination: str, code: str, subject: str, preamble: str
    ) -> bool:
        """Deliver a one-time *code* to *destination*.

        Returns False when the message could not be handed to the provider;
        implementations never raise for delivery failures.
        """
        ...
