class UsageError(Exception):
    """Raised when the library is used in a way it does not support."""
    ...


class InvalidArgument(ValueError):
    """Raised when an insert or update receives no data."""
    ...


class AttributeNotFound(LookupError):
    """Raised when reading an attribute that is not set on the model."""
    ...


class HiddenAttribute(LookupError):
    """Raised when reading an attribute declared as hidden."""
    ...


class MassAssignment(ValueError):
    """Raised when writing an attribute that is not fillable."""
    ...


class ExecutionFailure(Exception):
    """Raised for driver, SQL, or connection level failures."""
    ...


def tert(condition: bool, error_message: str = '') -> None:
    """If condition is false, raises a TypeError with the given message."""
    if not condition:
        raise TypeError(error_message)

def vert(condition: bool, error_message: str = '') -> None:
    """If condition is false, raises a ValueError with the given message."""
    if not condition:
        raise ValueError(error_message)

def tressa(condition: bool, error_message: str = '') -> None:
    """If condition is false, raises a UsageError with the given message."""
    if not condition:
        raise UsageError(error_message)
