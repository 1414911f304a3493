"""
Error kinds raised by the product info subsystem.

Record-level errors (RegionNotFound, MalformedRecord) are recovered during ingestion,
vendor-level errors (VendorFetchFailure) are isolated by the renewal manager and
only query-level errors (NotFound, UnsupportedOperation) ever reach API callers.
"""


class ProductInfoError(Exception):
    """Base class for all product info errors."""
    pass


class RegionNotFound(ProductInfoError):
    """Raised when a billing-record region label matches no known region."""

    def __init__(self, label: str):
        super().__init__(f"couldn't find region: {label}")
        self.label = label


class MalformedRecord(ProductInfoError):
    """Raised when a billing record cannot be parsed into an instance type and price."""
    pass


class VendorFetchFailure(ProductInfoError):
    """Raised when a vendor API call fails during a fetch."""

    def __init__(self, vendor: str, message: str):
        super().__init__(f"[{vendor}] {message}")
        self.vendor = vendor


class UnsupportedOperation(ProductInfoError):
    """Raised when a vendor does not support the requested operation."""
    pass


class NotFound(ProductInfoError):
    """Raised when a queried key was never populated."""
    pass
