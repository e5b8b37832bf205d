"""Exception types raised by bookcat services."""


class BookcatError(Exception):
    """Base class for bookcat errors."""


class NotFoundError(BookcatError, LookupError):
    """A catalog or book does not exist, or is not visible to the caller."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
