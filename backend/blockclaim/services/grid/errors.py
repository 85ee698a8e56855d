"""Exceptions raised by the grid services."""


class GridError(Exception):
    """Base exception for grid-related errors."""
    pass


class InvalidCoordinate(GridError, ValueError):
    """Raised when x or y is not an integer inside the grid."""

    reason = 'invalid_coordinate'

    def __init__(self, x, y, grid_size):
        super().__init__(f"({x!r}, {y!r}) is outside a {grid_size}x{grid_size} grid")
        self.x = x
        self.y = y


class AlreadyClaimed(GridError):
    """Raised when a coordinate already has a claim record."""

    reason = 'already_claimed'

    def __init__(self, record):
        super().__init__(f"{record.coordinate.key} already claimed by {record.owner_name}")
        self.record = record


class EmptyName(GridError, ValueError):
    """Raised when a rename trims down to nothing."""

    reason = 'empty_name'


class UnknownIdentity(GridError, KeyError):
    """Raised when an identity id is not connected."""
    pass


class DeliveryFailure(GridError):
    """Raised by a transport when a message cannot reach its recipient."""
    pass


class StorageFailure(GridError):
    """Raised by the claim ledger when a database write fails."""
    pass
