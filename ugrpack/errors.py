class UgrPackError(Exception):
    """Base class for ugrpack-specific errors."""


# Build time
class BuildError(UgrPackError):
    pass


class SourceUnavailable(BuildError):
    pass


class DuplicateTag(BuildError):
    pass


class ManifestError(BuildError):
    pass


# Read back
class CorruptHeader(UgrPackError):
    pass


# Query time
class TagNotFound(UgrPackError, KeyError):
    def __str__(self) -> str:
        # KeyError would repr() the message
        return UgrPackError.__str__(self)


class UnsupportedOperation(UgrPackError):
    pass


# Stream level
class IOFailure(UgrPackError):
    pass
