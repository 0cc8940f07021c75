from __future__ import annotations
import os, json
from pathlib import Path
from datetime import datetime, timezone
from typing import Dict, Any

# Default folder: backend/var/history-packs (override with HISTORY_PACK_DIR)
_DEFAULT_DIR = Path(__file__).resolve().parents[2] / "var" / "history-packs"
PACK_DIR = Path(os.getenv("HISTORY_PACK_DIR", str(_DEFAULT_DIR)))

def _ensure_dir() -> None:
    PACK_DIR.mkdir(parents=True, exist_ok=True)

def write_pack(kind: str, entity_id: str, pack: Dict[str, Any], prefix: str = "history-pack") -> Path:
    """
    Save a single history pack as pretty JSON.
    File name: <prefix>-<kind>-<id>-<UTC timestamp>.json
    """
    _ensure_dir()
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    name = f"{prefix}-{kind}-{entity_id}-{ts}.json"
    fp = PACK_DIR / name
    with fp.open("w", encoding="utf-8") as f:
        json.dump(pack, f, ensure_ascii=False, indent=2, default=str)
        f.write("\n")
    return fp
