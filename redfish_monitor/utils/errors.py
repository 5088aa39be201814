"""Error taxonomy for rule loading, traversal and metric extraction."""


class RuleError(Exception):
    """Base class for errors in a collection rule document."""


class InvalidRule(RuleError):
    """Rule document is malformed or misses a mandatory field."""


class UnknownConverter(RuleError):
    """Property rule names a value type that has no converter."""


class ConversionFailure(ValueError):
    """Raw value cannot be converted into a metric sample."""


# Runtime categories below are never raised out of a traversal or a scrape.
# Their names are attached to log records as ``error_type``.

class FetchFailure(Exception):
    """Resource could not be fetched (transport error, timeout, non-2xx)."""


class ParseFailure(Exception):
    """Resource body is not valid JSON."""


class SchemaViolation(Exception):
    """Resource does not follow the expected Redfish shape."""


class PointerMismatch(Exception):
    """Pointer pattern does not resolve inside a document."""
