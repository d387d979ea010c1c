"""Exception hierarchy for tangerine-report.

NotFound and Store errors abort the flattening pass that raised them and
propagate to the caller. Validation failures are never raised; they are
recorded on the flattened result as data.
"""

__all__ = [
    "ConfigError",
    "DocumentNotFoundError",
    "MalformedInputError",
    "StoreError",
    "TangerineReportError",
    "UnknownPrototypeError",
]


class TangerineReportError(Exception):
    """Base exception for all tangerine-report errors."""


class ConfigError(TangerineReportError):
    """Configuration file is missing, unreadable or invalid."""


class DocumentNotFoundError(TangerineReportError):
    """A referenced assessment, subtest, result or workflow document is absent.

    Attributes:
        doc_id: Identifier of the missing document.

    """

    def __init__(self, message: str, doc_id: str = "") -> None:
        super().__init__(message)
        self.doc_id = doc_id


class MalformedInputError(TangerineReportError):
    """A document lacks a field required to flatten it at all."""


class StoreError(TangerineReportError):
    """The document store failed to read or write.

    Attributes:
        status_code: HTTP status returned by the store, or None for
            transport failures.

    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnknownPrototypeError(TangerineReportError):
    """A subtest carries a prototype tag outside the supported set.

    Only raised when ``engine.strict_prototypes`` is enabled; otherwise
    unknown prototypes are logged and skipped.

    Attributes:
        prototype: The unrecognized tag.
        subtest_id: Subtest carrying the tag.

    """

    def __init__(self, prototype: str, subtest_id: str = "") -> None:
        super().__init__(f"Unknown prototype '{prototype}' on subtest '{subtest_id}'")
        self.prototype = prototype
        self.subtest_id = subtest_id
