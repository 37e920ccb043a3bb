"""
Exception hierarchy for the scan aggregation engine.

Adapter failures are always caught by the dispatcher and recorded on the
scan job; only job setup failures and caller mistakes reach user code.
"""


class IdentiscanError(Exception):
    """Base exception for all engine errors"""
    pass


class AdapterError(IdentiscanError):
    """Raised when a source fails (network error, surfaced non-2xx response)"""

    def __init__(self, adapter: str, message: str):
        super().__init__(message)
        self.adapter = adapter


class AdapterTimeoutError(AdapterError):
    """Raised when a source exceeds its per-adapter deadline"""

    def __init__(self, adapter: str):
        super().__init__(adapter, "Timeout")


class ScanSetupError(IdentiscanError):
    """Raised when a scan job cannot be set up (cache or registry failure)"""
    pass


class ScanNotFoundError(IdentiscanError):
    """Raised when a scan id is not present in the job table"""
    pass


class ConfigError(IdentiscanError):
    """Raised when configuration cannot be loaded or validated"""
    pass
