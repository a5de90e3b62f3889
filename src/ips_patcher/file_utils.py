import shutil
import zlib
from pathlib import Path


def read_target_bytes(path: str | Path) -> bytes:
    return Path(path).read_bytes()


def copy_target(src: str | Path, dst: str | Path) -> Path:
    """Copy src to dst so a patch can be applied to the copy."""
    dst = Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)
    return dst


def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def inspect_target(path: str | Path) -> dict:
    data = read_target_bytes(path)
    return {"size": len(data), "crc32": crc32(data)}
