"""
Run Metadata
------------
Provenance record written next to every CLI run (``run_meta.json``):
command line, config dump and hash, input file stats, git revision and
interpreter details.
"""

from __future__ import annotations

import datetime
import hashlib
import json
import platform
import subprocess
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional


def sha256_file(path: str | Path, *, chunk_size: int = 1 << 20) -> str:
    h = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def config_digest(cfg: Any) -> Dict[str, Any]:
    """Dumps a dataclass config and hashes its canonical JSON form."""
    if not is_dataclass(cfg) or isinstance(cfg, type):
        raise TypeError("config_digest expected a dataclass instance")
    dump = asdict(cfg)
    canonical = json.dumps(dump, sort_keys=True, separators=(",", ":"))
    return {
        "config_dump": dump,
        "config_dump_sha256": hashlib.sha256(canonical.encode("utf-8")).hexdigest(),
    }


def git_revision() -> Optional[str]:
    """HEAD commit of the working directory, or None outside a git checkout."""
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8").strip() or None


def _file_stats(path: str, hash_data: bool) -> Dict[str, Any]:
    p = Path(path)
    info: Dict[str, Any] = {"data_path": path}
    try:
        st = p.stat()
    except OSError:
        info["data_size_bytes"] = None
        info["data_mtime_utc"] = None
        return info

    info["data_size_bytes"] = st.st_size
    info["data_mtime_utc"] = datetime.datetime.fromtimestamp(
        st.st_mtime, tz=datetime.timezone.utc
    ).isoformat()
    if hash_data:
        info["data_sha256"] = sha256_file(p)
    return info


def build_run_meta(
    *,
    cmd: str,
    argv: list[str],
    run_id: str,
    outputs_dir: str | Path,
    config_path: Optional[str] = None,
    config_obj: Optional[Any] = None,
    data_path: Optional[str] = None,
    hash_data: bool = False,
) -> Dict[str, Any]:
    """Collects provenance for one run; never touches the run outputs."""
    meta: Dict[str, Any] = {
        "package": __package__,
        "cmd": cmd,
        "run_id": run_id,
        "argv": list(argv),
        "outputs_dir": str(Path(outputs_dir)),
        "timestamp_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(
            timespec="seconds"
        ),
        "git_sha": git_revision(),
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }

    if config_path:
        meta["config_path"] = config_path
        meta["config_sha256"] = sha256_file(config_path)

    if config_obj is not None:
        meta.update(config_digest(config_obj))

    if data_path:
        meta.update(_file_stats(data_path, hash_data))

    return meta


def write_run_meta(outputs_dir: str | Path, meta: Dict[str, Any]) -> Path:
    """Writes ``run_meta.json`` into ``outputs_dir`` (created if missing)."""
    out_dir = Path(outputs_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    path = out_dir / "run_meta.json"
    path.write_text(json.dumps(meta, indent=2, default=str), encoding="utf-8")
    return path
