"""Delivery outcomes raised by the platform layer and classified by fan-out."""


class DeliveryError(Exception):
    """A message could not be delivered. Transient unless a subclass says otherwise."""
    pass


class RateLimited(DeliveryError):
    """The platform throttled us; retry after ``retry_after`` seconds if given."""

    def __init__(self, retry_after: float | None = None, message: str = "Rate limited"):
        self.retry_after = retry_after
        super().__init__(message)


class RecipientUnreachable(DeliveryError):
    """Recipient does not exist, left, or blocks private messages. Terminal."""
    pass


class MissingPermission(DeliveryError):
    """The bot is not allowed to message this recipient. Terminal."""
    pass


TERMINAL_ERRORS = (RecipientUnreachable, MissingPermission)
