# src/callcenter_stats/errors.py

"""
Exceptions raised by the statistics pipeline.

Two families are kept apart. Configuration errors are programming or
setup mistakes (an unknown performance measure, a row-type conversion
that does not exist, mismatched matrix sizes); they subclass
`ValueError`. A missing measure is a data condition the caller can test
for beforehand; it subclasses `KeyError` so a plain dictionary-style
`except KeyError` also catches it.
"""


class ConfigurationError(ValueError):
    """Raised when the pipeline is set up inconsistently."""


class MeasureNotAvailableError(KeyError):
    """
    Raised when a matrix of counters or of statistical probes is
    requested but was never created, because no requested performance
    measure needed it.
    """
