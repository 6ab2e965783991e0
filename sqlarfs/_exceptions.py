class SqlarInvalidPathError(ValueError):
    """Raised when a path does not follow the archive path grammar. Subclass of ValueError."""
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid archive path {path!r}: {reason}.")


class SqlarCorruptRowError(ValueError):
    """Raised when the store hands back a row that cannot be decoded into an Entry."""
    def __init__(self, row: object, expected: int) -> None:
        self.row = row
        self.expected = expected
        super().__init__(
            f"Cannot decode archive row {row!r}: expected {expected} columns."
        )
