"""
Document Change Detection Cache.

決定何時需要重新序列化（持久化）拓撲：

1. 先比對 pops snapshot 的物件 identity（copy-on-write 下未變動時同一物件）
2. identity 不同時，再用 SHA-256 比對 canonical dump，排除「重建但內容相同」

快取實例掛在 WorkspaceService 上，服務重啟後快取清空 → 第一次一定視為變化。
"""
from __future__ import annotations

import hashlib
import json
import logging

from atlas.schemas.topology import Link, Pop
from atlas.topology.normalizer import canonical_dump

logger = logging.getLogger(__name__)


def compute_topology_hash(pops: list[Pop], links: list[Link] | None = None) -> str:
    """對 canonical dump 做 JSON 序列化（key 排序）取 SHA-256。"""
    payload = {
        "pops": canonical_dump(pops),
        "links": [
            lk.model_dump(mode="json", by_alias=True) for lk in (links or [])
        ],
    }
    data = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(data.encode()).hexdigest()


class DocumentChangeCache:
    """
    Per-workspace snapshot cache.

    key = workspace id
    value = (pops snapshot, links snapshot, SHA-256 hash)
    """

    def __init__(self) -> None:
        self._store: dict[str, tuple[list[Pop], list[Link], str]] = {}

    def has_changed(
        self,
        workspace_id: str,
        pops: list[Pop],
        links: list[Link] | None = None,
    ) -> bool:
        """回傳 True 表示內容有變化（或首次見到），並更新快取。"""
        links = links if links is not None else []
        cached = self._store.get(workspace_id)
        if cached is not None and cached[0] is pops and cached[1] is links:
            return False

        new_hash = compute_topology_hash(pops, links)
        if cached is not None and cached[2] == new_hash:
            self._store[workspace_id] = (pops, links, new_hash)
            return False

        self._store[workspace_id] = (pops, links, new_hash)
        logger.debug("Topology changed for workspace %s", workspace_id)
        return True

    def clear(self) -> None:
        self._store.clear()
