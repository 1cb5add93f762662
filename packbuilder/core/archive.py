from __future__ import annotations

import gzip
import os
import tarfile
from pathlib import Path
from typing import Iterator

# Fixed timestamp for every entry: equal inputs give byte-identical layers.
NORMALIZED_MTIME = 0


def _walk_sorted(src_dir: Path) -> Iterator[Path]:
    for root, dirs, files in os.walk(src_dir, followlinks=False):
        dirs.sort()
        base = Path(root)
        # symlinked directories are listed in dirs but not descended into
        for name in sorted(dirs + files):
            yield base / name


def _join_arcname(tar_dir: str, rel: str) -> str:
    root = tar_dir.strip("/")
    if not rel or rel == ".":
        return root
    return f"{root}/{rel}" if root else rel


def create_tgz_file(tar_file: Path, src_dir: Path, tar_dir: str, uid: int = 0, gid: int = 0) -> Path:
    """Package ``src_dir`` as a gzip tar whose entries live under ``tar_dir``.

    Entries are sorted, ownership is forced to ``uid``/``gid`` with empty
    user and group names, and all timestamps are zeroed, so the archive bytes
    depend only on the tree contents and permission bits.
    """
    src = Path(src_dir)
    if not src.is_dir():
        raise FileNotFoundError(f"source directory not found: {src}")

    def _normalize(ti: tarfile.TarInfo) -> tarfile.TarInfo:
        ti.uid = uid
        ti.gid = gid
        ti.uname = ""
        ti.gname = ""
        ti.mtime = NORMALIZED_MTIME
        return ti

    out = Path(tar_file)
    with out.open("wb") as raw:
        with gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz:
            with tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                tar.add(str(src), arcname=_join_arcname(tar_dir, ""), recursive=False, filter=_normalize)
                for path in _walk_sorted(src):
                    rel = path.relative_to(src).as_posix()
                    tar.add(str(path), arcname=_join_arcname(tar_dir, rel), recursive=False, filter=_normalize)
    return out
