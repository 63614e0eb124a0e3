"""
持久化：仪表盘文档的 JSON 导入导出，以及基于 TinyDB 的本地存储。
"""

import json
import logging
import time
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from tinydb import Query, TinyDB

from dashboard_core.models import DashboardDocument, new_id
from dashboard_core.registry import WidgetRegistry, default_registry
from dashboard_core.store import normalize_document

logger = logging.getLogger(__name__)


class DashboardImportError(ValueError):
    """Imported text is not a valid dashboard document."""


# ── JSON 交换格式 ─────────────────────────────────────

def export_dashboard(document: DashboardDocument) -> str:
    """Pretty-printed camelCase JSON (2-space indent)."""
    return json.dumps(document.to_wire(), indent=2, ensure_ascii=False)


def import_dashboard(
    text: str,
    reassign_id: bool = False,
    registry: WidgetRegistry = default_registry,
) -> DashboardDocument:
    """
    Parse and fully re-validate an exported document.

    Raises ``DashboardImportError`` for malformed JSON or schema violations.
    Layout/widget mismatches are repaired, not rejected.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise DashboardImportError(f"Invalid JSON: {e.msg} (line {e.lineno})") from e

    try:
        document = DashboardDocument.model_validate(raw)
    except ValidationError as e:
        raise DashboardImportError(_describe(e)) from e

    # 组件配置按注册表 schema 校验，修复布局之前完成
    for index, widget in enumerate(document.widgets):
        try:
            registry.validate_config(widget.type.value, widget.config)
        except ValidationError as e:
            raise DashboardImportError(_describe(e, f"widgets.{index}.config")) from e

    try:
        document = normalize_document(document, registry)
    except ValueError as e:
        raise DashboardImportError(f"Invalid dashboard: {e}") from e
    if reassign_id:
        document.id = new_id()
    return document


def _describe(error: ValidationError, prefix: str = "") -> str:
    first = error.errors()[0]
    parts = [prefix] if prefix else []
    parts += [str(part) for part in first.get("loc", ())]
    loc = ".".join(parts) or "document"
    return f"{loc}: {first.get('msg')}"


# ── 本地存储 ──────────────────────────────────────────

class DashboardRepository:
    """TinyDB 封装：按文档 id 存取的仪表盘集合。"""

    def __init__(self, db_path: str | Path):
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
        self.table = self.db.table("dashboards")
        logger.info(f"Dashboard database opened: {db_path}")

    def save_dashboard(self, document: DashboardDocument):
        """Insert or overwrite the record for ``document.id``."""
        record = {
            "id": document.id,
            "name": document.name,
            "spec": document.to_wire(),
            "updated_at": time.time(),
        }
        Dashboard = Query()
        self.table.upsert(record, Dashboard.id == document.id)
        logger.debug(f"[{document.id}] Saved")

    def load_dashboard(self, dashboard_id: str) -> Optional[DashboardDocument]:
        """The stored document, or None when the id is unknown."""
        Dashboard = Query()
        results = self.table.search(Dashboard.id == dashboard_id)
        if not results:
            return None
        try:
            return DashboardDocument.model_validate(results[0]["spec"])
        except ValidationError as e:
            logger.error(f"[{dashboard_id}] Stored dashboard is invalid: {e}")
            raise DashboardImportError(f"Stored dashboard {dashboard_id} is invalid") from e

    def list_dashboards(self) -> List[DashboardDocument]:
        """All valid stored documents; invalid records are logged and skipped."""
        documents = []
        for record in self.table.all():
            try:
                documents.append(DashboardDocument.model_validate(record["spec"]))
            except (KeyError, ValidationError) as e:
                logger.error(f"[{record.get('id')}] Skipping invalid stored dashboard: {e}")
        return documents

    def delete_dashboard(self, dashboard_id: str) -> bool:
        Dashboard = Query()
        removed = self.table.remove(Dashboard.id == dashboard_id)
        return bool(removed)

    def close(self):
        self.db.close()
