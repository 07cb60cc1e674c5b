from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.property import PropertySnapshot


class PropertyCatalogPort(ABC):
    @abstractmethod
    async def get_property(self, property_id: str) -> PropertySnapshot | None:
        raise NotImplementedError
