from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from core.order_status import OrderStatus
from .database import Base, utcnow

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in OrderStatus)


class Order(Base):
    """A patron's request for one cocktail (times quantity).

    `status` always mirrors the `to_status` of the newest OrderEvent; it is only
    written together with a new event.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_orders_status"),
        CheckConstraint("quantity BETWEEN 1 AND 10", name="ck_orders_quantity"),
        Index("idx_orders_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    cocktail_id = Column(Integer, ForeignKey("cocktails.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=False, default="")
    location = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default=OrderStatus.PLACED.value)
    assigned_bartender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    assigned_bartender = relationship("User", foreign_keys=[assigned_bartender_id])
    cocktail = relationship("Cocktail")
    events = relationship(
        "OrderEvent",
        back_populates="order",
        order_by="OrderEvent.id",
        cascade="all, delete-orphan",
    )


class OrderEvent(Base):
    """Append-only audit record of one status change ("" -> PLACED on creation)."""
    __tablename__ = "order_events"
    __table_args__ = (
        Index("idx_order_events_order_created", "order_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    from_status = Column(String, nullable=False, default="")
    to_status = Column(String, nullable=False)
    changed_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="events")
    changed_by = relationship("User")
