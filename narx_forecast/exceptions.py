"""Error taxonomy shared by the loader, the training pipeline and the GUI."""


class NarxError(Exception):
    """Base class for every error reported back to the user."""


class DataImportError(NarxError):
    """The selected file could not be turned into a (y, X) pair."""


class NoFileSelectedError(DataImportError):
    """The user cancelled the file selection."""


class MissingFieldError(DataImportError):
    """The file lacks the `y` or the `X` variable."""


class UnsupportedFormatError(DataImportError):
    """The file extension is not one of the supported containers."""


class DataValidationError(DataImportError):
    """`y` and `X` were found but are not numeric or not aligned."""


class EmptyError(NarxError):
    """Training was requested before any data was imported."""


class InvalidParameterError(NarxError, ValueError):
    """Lag order, hidden units or split fractions are out of range."""


class InsufficientDataError(NarxError):
    """The lag order leaves no row with a complete history."""


class EmptyPartitionError(NarxError):
    """A train, validation or test partition has no rows."""
