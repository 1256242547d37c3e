from __future__ import annotations
import json, os

__all__ = ["append_jsonl_atomic"]


def append_jsonl_atomic(path, obj, ensure_ascii: bool = False) -> None:
    """
    Anexa una línea JSON (JSONL). Usamos flush+fsync para minimizar riesgo
    de cortes, sin reescribir el archivo completo.
    """
    d = os.path.dirname(str(path)) or "."
    os.makedirs(d, exist_ok=True)
    line = json.dumps(obj, ensure_ascii=ensure_ascii, default=str)
    with open(path, "a", encoding="utf-8", newline="\n") as f:
        f.write(line + "\n")
        f.flush()
        os.fsync(f.fileno())
