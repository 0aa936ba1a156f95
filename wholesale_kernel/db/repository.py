"""
Module: wholesale_kernel.db.repository
Responsibility: Abstract base for the persistence boundary of every
    aggregate.  A repository is the only code that calls ``Entity.set_id``
    and the only code that rebuilds entities from rows.
Architecture position: Kernel > DB.  May import from db/base.py and from
    domain/entity.py (for the identity contract only).

Invariants enforced:
    - Identity is assigned exactly once, after the first successful flush,
      from the store-generated primary key.
    - Reconstitution goes through the entity's validating ``reconstitute``
      classmethod; a tampered row fails exactly as bad input would.
    - Session ownership: repositories do NOT commit; the caller owns the
      session and its transaction scope (see db.engine.session_scope).

Failure modes:
    - IllegalStateError when adding an entity that already has an id, or
      saving one that was never added.
    - InvalidArgumentError / InconsistentFinancialsError from reconstitution
      of an invalid row.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from wholesale_kernel.db.base import Base
from wholesale_kernel.domain.clock import Clock, SystemClock
from wholesale_kernel.domain.entity import Entity
from wholesale_kernel.exceptions import IllegalStateError
from wholesale_kernel.logging_config import get_logger

logger = get_logger("db.repository")

EntityType = TypeVar("EntityType", bound=Entity)
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[EntityType, ModelType]):
    """
    Stores and reconstitutes one aggregate type.

    Contract:
        Subclasses set ``model`` and implement ``_new_row``,
        ``_update_row`` and ``_to_entity``.  Aggregates with child entities
        override ``_sync_child_ids`` to hand out child identities after
        every flush.
    """

    model: type[ModelType]

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    @abstractmethod
    def _new_row(self, entity: EntityType) -> ModelType:
        ...

    @abstractmethod
    def _update_row(self, row: ModelType, entity: EntityType) -> None:
        ...

    @abstractmethod
    def _to_entity(self, row: ModelType) -> EntityType:
        ...

    def _sync_child_ids(self, entity: EntityType, row: ModelType) -> None:
        """Assign ids to newly stored child entities.  No-op by default."""

    def add(self, entity: EntityType) -> EntityType:
        """
        Insert a new aggregate and assign its identity.

        Postconditions: ``entity.id`` equals the new row's primary key.
        """
        if entity.is_persisted:
            raise IllegalStateError(
                "add",
                f"{entity.entity_type} {entity.id} is already stored.",
            )
        row = self._new_row(entity)
        self.session.add(row)
        self.session.flush()
        entity.set_id(row.id)
        self._sync_child_ids(entity, row)
        logger.info(
            "entity_stored",
            extra={"entity_type": entity.entity_type, "entity_id": entity.id},
        )
        return entity

    def get(self, entity_id: int) -> EntityType | None:
        """Load and reconstitute, or None when no row has this id."""
        row = self.session.get(self.model, entity_id)
        if row is None:
            return None
        return self._to_entity(row)

    def save(self, entity: EntityType) -> EntityType:
        """Copy the aggregate's current state onto its stored row."""
        if not entity.is_persisted:
            raise IllegalStateError(
                "save",
                f"{entity.entity_type} has not been stored yet; call add() first.",
            )
        row = self.session.get(self.model, entity.id)
        if row is None:
            raise IllegalStateError(
                "save",
                f"{entity.entity_type} {entity.id} no longer exists in the store.",
            )
        self._update_row(row, entity)
        self.session.flush()
        self._sync_child_ids(entity, row)
        logger.debug(
            "entity_saved",
            extra={"entity_type": entity.entity_type, "entity_id": entity.id},
        )
        return entity
