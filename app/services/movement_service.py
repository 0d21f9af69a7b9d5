# app/services/movement_service.py
"""
Group movement store - participant join/leave history.
"""
import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from app.models.movement import GroupMovement
from app.schemas.movement import MovementCreate, MovementFilters, MovementListResult, MovementResponse
from app.utils.phone import ensure_normalized_phone

log = logging.getLogger("whatsgroups.movements")


class MovementService:
    """Persists and queries GroupMovement rows"""

    # ────────────────────────────────────────────
    # Create
    # ────────────────────────────────────────────

    def create(self, db: Session, data: MovementCreate) -> GroupMovement:
        """
        Store one movement with canonical phones.

        Every call inserts a new row; duplicate webhook deliveries are kept.

        Raises:
            ValueError: contact phone can't be canonicalized
        """
        contact_phone = ensure_normalized_phone(data.contact_phone)
        if not contact_phone:
            raise ValueError(f"Invalid contact phone: {data.contact_phone!r}")

        movement = GroupMovement(
            user_id=data.user_id,
            instance_id=data.instance_id,
            group_id=data.group_id,
            group_name=data.group_name,
            contact_phone=contact_phone,
            contact_name=data.contact_name,
            movement_type=data.movement_type,
            author_phone=ensure_normalized_phone(data.author_phone),
            timestamp=data.timestamp,
        )
        db.add(movement)
        db.commit()
        db.refresh(movement)

        log.info(f"📝 Movement {movement.movement_type}: {contact_phone} in {movement.group_id}")
        return movement

    # ────────────────────────────────────────────
    # Queries
    # ────────────────────────────────────────────

    def list(self, db: Session, filters: MovementFilters) -> MovementListResult:
        """Filtered, paginated movements, newest event first."""
        query = db.query(GroupMovement).filter(GroupMovement.user_id == filters.user_id)

        if filters.instance_id:
            query = query.filter(GroupMovement.instance_id == filters.instance_id)
        if filters.group_id:
            query = query.filter(GroupMovement.group_id == filters.group_id)
        if filters.movement_type:
            query = query.filter(GroupMovement.movement_type == filters.movement_type)
        if filters.start_date:
            query = query.filter(GroupMovement.timestamp >= filters.start_date)
        if filters.end_date:
            query = query.filter(GroupMovement.timestamp <= filters.end_date)

        total = query.count()
        rows = (
            query.order_by(GroupMovement.timestamp.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )

        return MovementListResult(
            movements=[MovementResponse.model_validate(row) for row in rows],
            total=total,
            page=filters.page,
            limit=filters.limit,
            total_pages=math.ceil(total / filters.limit) if total else 0,
        )

    def list_for_group(
        self,
        db: Session,
        user_id: str,
        group_id: str,
        page: int = 1,
        limit: int = 50,
        instance_id: Optional[str] = None,
    ) -> MovementListResult:
        filters = MovementFilters(
            user_id=user_id,
            group_id=group_id,
            instance_id=instance_id,
            page=page,
            limit=limit,
        )
        return self.list(db, filters)
