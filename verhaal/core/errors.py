from __future__ import annotations

from typing import Iterable, Tuple


class FormError(Exception):
    """
    Base exception for all recoverable content-form failures.
    """

    pass


class ValidationError(FormError):
    """
    Raised when one or more required fields are missing.

    Violations keep the order in which the fields appear on the form.
    """

    def __init__(self, violations: Iterable[str]) -> None:
        self.violations: Tuple[str, ...] = tuple(violations)
        super().__init__("\n".join(self.violations))


class DocumentImportError(FormError):
    """
    Raised when a source document cannot be read as a supported container.
    """

    pass


class SaveError(FormError):
    """
    Raised by record stores when persisting a draft fails.
    """

    pass


class CategoryFetchError(FormError):
    """
    Raised by category directories when the listing cannot be retrieved.
    """

    pass
