class UnsupportedRecordError(ValueError):
    """Raised when a record cannot be handled at all, e.g. a tuple or unit struct."""


class MissingFieldError(ValueError):
    """Raised by a materialized builder when a required field was never set."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is not set")
        self.field = field
