"""Process-unique identifiers for tree nodes and registry records."""

import uuid

# Reserved identifier of the tree root node
ROOT_ID = "root"

# Number of hex characters taken from a UUID4
_ID_LENGTH = 12


class IdGenerator:
    """Issues short identifiers that are never reused within the process.

    Identifiers are 12-character hex strings taken from ``uuid4``. Every
    issued identifier is remembered, so a collision is retried instead of
    being handed out twice.
    """

    def __init__(self) -> None:
        self._issued: set[str] = set()

    def new_id(self) -> str:
        """Return a fresh identifier."""
        while True:
            candidate = uuid.uuid4().hex[:_ID_LENGTH]
            if candidate != ROOT_ID and candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    def __len__(self) -> int:
        return len(self._issued)


_default_generator = IdGenerator()


def new_id() -> str:
    """Return a fresh identifier from the process-wide generator."""
    return _default_generator.new_id()
