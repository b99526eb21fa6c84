"""Admin-maintained name tables that computers and components point at.

Every table exposes its human-readable value through ``LOOKUP_COLUMN`` so the
importer can resolve any of them with a single helper. Component conditions
keep their value in a column called ``condition`` rather than ``name``.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class ComputerModel(Base):
    __tablename__ = "computer_models"
    LOOKUP_COLUMN = "name"
    LABEL = "Computer model"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True)


class ComputerCondition(Base):
    __tablename__ = "computer_conditions"
    LOOKUP_COLUMN = "name"
    LABEL = "Computer condition"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True)


class ComponentCondition(Base):
    __tablename__ = "component_conditions"
    LOOKUP_COLUMN = "condition"
    LABEL = "Component condition"

    id = Column(Integer, primary_key=True, index=True)
    condition = Column(Text, nullable=False, unique=True)


class ComponentType(Base):
    __tablename__ = "component_types"
    LOOKUP_COLUMN = "name"
    LABEL = "Component type"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True)


class RunStatus(Base):
    __tablename__ = "run_statuses"
    LOOKUP_COLUMN = "name"
    LABEL = "Run status"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True)


__all__ = [
    "ComputerModel",
    "ComputerCondition",
    "ComponentCondition",
    "ComponentType",
    "RunStatus",
]
