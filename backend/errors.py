"""
Pipeline errors.
Only startup problems are fatal; per-order failures are counted, not raised.
"""


class PipelineError(Exception):
    """Base class for fatal pipeline errors."""


class CatalogError(PipelineError):
    """The order id catalog is missing or unreadable."""


class CheckpointError(PipelineError):
    """The checkpoint file exists but is not a valid order details snapshot."""


class OrderStoreError(PipelineError):
    """The local orders file exists but cannot be read."""
