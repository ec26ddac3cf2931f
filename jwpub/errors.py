class JwpubError(Exception):
    """Base class for jwpub-specific errors."""


# Store lifecycle
class InitializationError(JwpubError):
    """The embedded store engine could not be opened or its schema created."""


class NotInitializedError(JwpubError):
    """An operation ran before initialize() or after finalize()/close()."""


class SchemaError(JwpubError):
    """A single row insert failed. Absorbed and logged by the store."""

    def __init__(self, table: str, message: str):
        super().__init__(f"{table}: {message}")
        self.table = table


# Keys/content
class KeyDerivationError(JwpubError):
    pass


class CodecError(JwpubError):
    pass


# Container
class PackagingError(JwpubError):
    pass
