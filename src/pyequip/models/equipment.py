"""Equipment model."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from pyequip._constants import DEFAULT_CATEGORY
from pyequip.models._base import FeedBaseModel


class EquipmentStatus(StrEnum):
    """Item status. Values are the labels written back to the sheet."""

    AVAILABLE = "Disponible"
    IN_USE = "En uso"
    ASSIGNED_INTERNAL = "Asignado interno"
    MAINTENANCE = "Mantención"

    @classmethod
    def from_raw(cls, value: object) -> EquipmentStatus:
        """Map the free-form ``Estado`` column to a status.

        The sheet is edited by hand, so matching is by substring. Anything
        unrecognised (including an empty cell) counts as available.
        """
        text = str(value or "").strip().lower()
        if text == "en uso" or "vencido" in text:
            return cls.IN_USE
        if "asignado" in text:
            return cls.ASSIGNED_INTERNAL
        if "mantenci" in text or "repara" in text or "dañado" in text:
            return cls.MAINTENANCE
        return cls.AVAILABLE

    @property
    def is_claimed(self) -> bool:
        """Whether the status means a session or assignment holds the item."""
        return self in (EquipmentStatus.IN_USE, EquipmentStatus.ASSIGNED_INTERNAL)


class Equipment(FeedBaseModel):
    """A single inventory item."""

    id: str
    name: str
    category: str = DEFAULT_CATEGORY
    type_it: str = ""
    """IT type/model column (``Tipo_de_TI``)."""
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    condition: str = ""
    """Free text, or an encoded session tag while the item is lent out."""

    @property
    def is_available(self) -> bool:
        return self.status == EquipmentStatus.AVAILABLE


class EquipmentIndex:
    """Read-only lookup of items by id, preserving feed order."""

    def __init__(self, items: Iterable[Equipment]) -> None:
        self._items = tuple(items)
        self._by_id = {item.id: item for item in self._items}

    def get(self, item_id: str) -> Equipment | None:
        return self._by_id.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def name_of(self, item_id: str) -> str:
        item = self._by_id.get(item_id)
        return item.name if item is not None else item_id

    def replace(self, updates: dict[str, Equipment]) -> tuple[Equipment, ...]:
        """Return the item tuple with *updates* swapped in by id."""
        return tuple(updates.get(item.id, item) for item in self._items)
