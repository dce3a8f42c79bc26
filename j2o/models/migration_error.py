"""Fatal error of a migration component."""


class MigrationError(Exception):
    """A component cannot continue, e.g. the issue batch or the mapping could not be loaded.

    Per-relation failures never raise this; they are counted in the summary.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
