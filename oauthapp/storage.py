"""
存储协作方：基于 TinyDB 的键值存储。
每个 key 对应一条文档，写入为单条 upsert，读者不会看到写了一半的记录。
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage

logger = logging.getLogger(__name__)

_DB_FILE = "storage.json"


class Storage:
    """TinyDB 键值操作封装。"""

    def __init__(self, data_dir: str | Path | None = None, in_memory: bool = False):
        if in_memory:
            self.db = TinyDB(storage=MemoryStorage)
            logger.info("TinyDB 内存存储已打开")
        else:
            data_dir = Path(data_dir or "data")
            data_dir.mkdir(parents=True, exist_ok=True)
            db_path = data_dir / _DB_FILE
            self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
            logger.info(f"TinyDB 数据库已打开: {db_path}")
        self.table = self.db.table("entries")
        # TinyDB 本身不是线程安全的
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        Entry = Query()
        with self._lock:
            results = self.table.search(Entry.key == key)
        return copy.deepcopy(results[0]["value"]) if results else None

    def put(self, key: str, value: Dict[str, Any]):
        Entry = Query()
        with self._lock:
            self.table.upsert({"key": key, "value": value}, Entry.key == key)
        logger.debug(f"[{key}] 已写入")

    def delete(self, key: str):
        Entry = Query()
        with self._lock:
            self.table.remove(Entry.key == key)
        logger.debug(f"[{key}] 已删除")

    def list(self, prefix: str = "") -> List[str]:
        Entry = Query()
        with self._lock:
            results = self.table.search(Entry.key.test(lambda k: k.startswith(prefix)))
        return sorted(r["key"] for r in results)

    def close(self):
        """关闭数据库。"""
        self.db.close()
