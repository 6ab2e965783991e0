from enum import IntEnum

READ_BITS = 0o444
EXEC_BITS = 0o111


class PermMask(IntEnum):
    """Which permission triads are honored when checking archive modes.

    ``ANY`` allows reading (or traversing) a node that carries the bit for
    at least one of owner, group or others.
    """

    OWNER = 0o700
    GROUP = 0o070
    OTHERS = 0o007
    ANY = 0o777


class PermissionPolicy:
    def __init__(self, mask: PermMask | int = PermMask.ANY) -> None:
        try:
            self._mask: PermMask = PermMask(mask)
        except ValueError:
            raise ValueError(
                f"Invalid perm_mask value: {mask!r}. "
                "Expected PermMask.OWNER, GROUP, OTHERS or ANY."
            ) from None

    @property
    def mask(self) -> PermMask:
        return self._mask

    def can_read(self, mode: int) -> bool:
        return mode & READ_BITS & self._mask != 0

    def can_traverse(self, mode: int) -> bool:
        return mode & EXEC_BITS & self._mask != 0

    def __repr__(self) -> str:
        return f"PermissionPolicy({self._mask.name})"
