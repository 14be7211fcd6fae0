from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

class SupabaseClient:
	"""Minimal PostgREST client for the hosted ``tests`` table."""

	def __init__(
		self,
		url: Optional[str] = None,
		api_key: Optional[str] = None,
		*,
		table: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.url = url or settings.supabase_url
		self.api_key = api_key or settings.supabase_key
		if not self.url or not self.api_key:
			raise ValueError("SUPABASE_URL and SUPABASE_KEY must be configured")
		self.table = table or settings.supabase_table
		self.base_url = f"{self.url.rstrip('/')}/rest/v1/{self.table}"
		self._headers = {
			"apikey": self.api_key,
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
			"Prefer": "return=representation",
		}
		self._client = httpx.AsyncClient(timeout=settings.supabase_timeout_seconds, transport=transport)

	async def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
		r = await self._client.post(self.base_url, headers=self._headers, json=row)
		r.raise_for_status()
		data = r.json()
		if isinstance(data, list):
			return data[0] if data else {}
		return data if isinstance(data, dict) else {}

	async def select(self, filters: Dict[str, str], *, order: Optional[str] = None) -> List[Dict[str, Any]]:
		"""Rows matching PostgREST ``filters`` (column -> ``op.value``)."""
		params = {"select": "*", **filters}
		if order:
			params["order"] = order
		r = await self._client.get(self.base_url, headers=self._headers, params=params)
		r.raise_for_status()
		data = r.json()
		return data if isinstance(data, list) else []

	async def delete(self, filters: Dict[str, str]) -> List[Dict[str, Any]]:
		"""Delete matching rows and return the ones removed."""
		r = await self._client.delete(self.base_url, headers=self._headers, params=filters)
		r.raise_for_status()
		data = r.json() if r.content else []
		return data if isinstance(data, list) else []

	async def aclose(self) -> None:
		await self._client.aclose()
