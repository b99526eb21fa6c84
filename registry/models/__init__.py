"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from .owner import Owner
from .lookups import ComponentCondition, ComponentType, ComputerCondition, ComputerModel, RunStatus
from .computer import Computer
from .component import Component

__all__ = [
    "Owner",
    "ComputerModel",
    "ComputerCondition",
    "ComponentCondition",
    "ComponentType",
    "RunStatus",
    "Computer",
    "Component",
]
