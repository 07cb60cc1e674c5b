from __future__ import annotations

from app.application.ports.property_catalog import PropertyCatalogPort
from app.domain.entities.property import PropertySnapshot
from app.infrastructure.supabase.postgrest_client import PostgrestClient
from app.infrastructure.supabase.rows import first_image


class SupabasePropertyCatalog(PropertyCatalogPort):
    def __init__(self, client: PostgrestClient, table: str = "properties") -> None:
        self._client = client
        self._table = table

    async def get_property(self, property_id: str) -> PropertySnapshot | None:
        rows = await self._client.select(
            self._table,
            {
                "select": "id,title,images,agent_id,agents!agent_id(company_name)",
                "id": f"eq.{property_id}",
                "limit": "1",
            },
        )
        if not rows:
            return None
        row = rows[0]
        agent = row.get("agents") or {}
        return PropertySnapshot(
            id=str(row["id"]),
            title=row.get("title") or "Property",
            agent_id=str(row["agent_id"]),
            image=first_image(row.get("images")),
            agent_name=agent.get("company_name") or "",
        )
