"""Domain exceptions shared by the stores, services and controllers."""


class BlockStoreError(Exception):
    """Base class for errors raised by the block inventory backends."""


class UniqueViolationError(BlockStoreError):
    """A block with the same code already exists."""


class BlockNotFoundError(BlockStoreError):
    """No block matches the requested id."""

    def __init__(self, block_id: int) -> None:
        super().__init__(f"Block {block_id} not found")
        self.block_id = block_id


class StoreUnavailableError(BlockStoreError):
    """The record store, blob store or identity provider could not be reached."""


class AuthenticationError(BlockStoreError):
    """A bearer token is missing, malformed, invalid or expired."""


class UploadValidationError(BlockStoreError):
    """An uploaded photo or form field failed validation."""
