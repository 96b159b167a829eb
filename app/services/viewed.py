"""
Which products the user has already opened.

Kept apart from the records themselves (like a product_views join table):
marking is idempotent, and the table uses viewed_ids() to dim reviewed rows.
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional, Set, Union


class ViewedTracker:
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._ids: List[str] = []
        if self.path and self.path.exists():
            self._ids = json.loads(self.path.read_text(encoding="utf-8") or "[]")

    async def mark_viewed(self, record_id: str) -> None:
        if record_id in self._ids:
            return
        self._ids.append(record_id)
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(self.path.write_text, json.dumps(self._ids), encoding="utf-8")

    async def viewed_ids(self) -> Set[str]:
        return set(self._ids)
