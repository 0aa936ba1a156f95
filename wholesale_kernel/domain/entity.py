"""
Entity -- Identity, audit stamping, and identity-only equality.

Responsibility:
    Base class for the mutable aggregates (SupplierTransaction, Order,
    OrderLine, Customer).  Owns the three concerns every aggregate shares:

    * write-once numeric identity assigned by the persistence boundary;
    * the audit contract (every mutation names a positive editor id and
      is re-stamped with the injected clock's time);
    * equality and hashing by identity, never by attributes.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Value objects do NOT inherit from
    this class; they are frozen dataclasses compared structurally.

Invariants enforced:
    - ``id`` is ``UNASSIGNED_ID`` until ``set_id`` is called exactly once
      with a positive integer.  A second call raises
      ``IdentityAlreadyAssignedError``.
    - ``last_edited_by`` is always a positive integer.
    - Two entities are equal only if they are the same type and share an
      assigned id.  An entity without an id is equal only to itself.

Failure modes:
    - InvalidArgumentError for non-positive ids or editors.
    - IdentityAlreadyAssignedError on double registration.

Hashing note:
    Unassigned entities hash by object identity and assigned entities hash
    by (type, id), so an entity's hash changes when ``set_id`` runs.  Add
    entities to sets or dict keys only after they have been stored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.values import require_positive_int
from wholesale_kernel.exceptions import IdentityAlreadyAssignedError
from wholesale_kernel.logging_config import get_logger

logger = get_logger("domain.entity")

UNASSIGNED_ID = 0


def require_editor(edited_by: Any, parameter: str = "edited_by") -> int:
    """Validate the caller identity supplied with every mutation."""
    return require_positive_int(edited_by, parameter, "Editor must be a valid person ID.")


class Entity:
    """
    Mutable aggregate with durable identity.

    Contract:
        Subclasses call ``super().__init__(last_edited_by, clock)`` after
        validating their own arguments, and call ``self._touch(editor)``
        as the last step of every successful mutation.
    """

    entity_type: ClassVar[str] = "Entity"

    def __init__(self, last_edited_by: int, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._id = UNASSIGNED_ID
        self._last_edited_by = require_editor(last_edited_by, "last_edited_by")
        self._last_edited_when = self._clock.now_utc()

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> int:
        return self._id

    @property
    def is_persisted(self) -> bool:
        return self._id != UNASSIGNED_ID

    def set_id(self, entity_id: int) -> None:
        """
        Assign the store-generated identifier.

        Called by the persistence boundary exactly once, after the first
        successful insert.

        Raises:
            InvalidArgumentError: if ``entity_id`` is not a positive integer.
            IdentityAlreadyAssignedError: if an id is already assigned.
        """
        require_positive_int(entity_id, "entity_id", "ID must be a positive integer.")
        if self._id != UNASSIGNED_ID:
            logger.warning(
                "entity_id_reassignment_rejected",
                extra={
                    "entity_type": self.entity_type,
                    "current_id": self._id,
                    "attempted_id": entity_id,
                },
            )
            raise IdentityAlreadyAssignedError(self.entity_type, self._id, entity_id)
        self._id = entity_id
        logger.debug(
            "entity_id_assigned",
            extra={"entity_type": self.entity_type, "entity_id": entity_id},
        )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    @property
    def last_edited_by(self) -> int:
        return self._last_edited_by

    @property
    def last_edited_when(self) -> datetime:
        return self._last_edited_when

    @property
    def clock(self) -> Clock:
        return self._clock

    def _touch(self, edited_by: int) -> None:
        self._last_edited_by = edited_by
        self._last_edited_when = self._clock.now_utc()

    def _restore_audit(self, last_edited_by: int, last_edited_when: datetime | None) -> None:
        """Reapply stored audit fields during reconstitution."""
        self._last_edited_by = require_editor(last_edited_by, "last_edited_by")
        if last_edited_when is not None:
            self._last_edited_when = last_edited_when

    # ------------------------------------------------------------------
    # Identity equality
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Entity) or type(self) is not type(other):
            return NotImplemented
        if self._id == UNASSIGNED_ID or other._id == UNASSIGNED_ID:
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        if self._id == UNASSIGNED_ID:
            return object.__hash__(self)
        return hash((type(self).__name__, self._id))
