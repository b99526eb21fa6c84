from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.session import Base


class Computer(Base):
    __tablename__ = "computers"
    # Serial numbers are unique per owner, never globally.
    __table_args__ = (
        UniqueConstraint("owner_id", "serial_number", name="ux_computers_owner_serial"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("owners.id"), nullable=False, index=True)
    computer_model_id = Column(Integer, ForeignKey("computer_models.id"), nullable=False, index=True)
    computer_condition_id = Column(Integer, ForeignKey("computer_conditions.id"), nullable=True, index=True)
    run_status_id = Column(Integer, ForeignKey("run_statuses.id"), nullable=True, index=True)
    serial_number = Column(String(20), nullable=False)
    order_number = Column(String(20), nullable=True)
    history = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    owner = relationship("Owner", back_populates="computers")
    computer_model = relationship("ComputerModel", lazy="joined")
    computer_condition = relationship("ComputerCondition", lazy="joined")
    run_status = relationship("RunStatus", lazy="joined")
    components = relationship("Component", back_populates="computer")

    @property
    def model_name(self) -> str | None:
        return self.computer_model.name if self.computer_model else None

    @property
    def condition_name(self) -> str | None:
        return self.computer_condition.name if self.computer_condition else None

    @property
    def run_status_name(self) -> str | None:
        return self.run_status.name if self.run_status else None


__all__ = ["Computer"]
