from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.session import Base


class Component(Base):
    """A board, drive or peripheral. ``computer_id`` is NULL for spares."""

    __tablename__ = "components"
    # NULL serials never collide, so unnumbered components may repeat freely.
    __table_args__ = (
        UniqueConstraint("owner_id", "serial_number", name="ux_components_owner_serial"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    computer_id = Column(Integer, ForeignKey("computers.id", ondelete="SET NULL"), nullable=True, index=True)
    component_type_id = Column(Integer, ForeignKey("component_types.id"), nullable=False, index=True)
    component_condition_id = Column(Integer, ForeignKey("component_conditions.id"), nullable=True, index=True)
    serial_number = Column(String(20), nullable=True)
    order_number = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    owner = relationship("Owner", back_populates="components")
    computer = relationship("Computer", back_populates="components", lazy="joined")
    component_type = relationship("ComponentType", lazy="joined")
    component_condition = relationship("ComponentCondition", lazy="joined")

    @property
    def is_spare(self) -> bool:
        return self.computer is None

    @property
    def type_name(self) -> str | None:
        return self.component_type.name if self.component_type else None

    @property
    def condition_value(self) -> str | None:
        return self.component_condition.condition if self.component_condition else None

    @property
    def computer_serial_number(self) -> str | None:
        return self.computer.serial_number if self.computer else None


__all__ = ["Component"]
