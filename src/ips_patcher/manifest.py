from pathlib import Path
from typing import Any

import yaml

from .errors import RecordError, SizeMismatch
from .patch_file import PatchFile
from .patch_record import LiteralRecord, PatchRecord, RLERecord

# YAML structure example:
# truncate: 0x64
# records:
#   - offset: 0x10
#     data: "AA BB CC"
#   - offset: 0x0
#     rle: { count: 4, fill: 0xFF }


def load_manifest(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e


def _parse_int(value: Any, what: str) -> int:
    # YAML reads 0x10 as an int already; quoted values arrive as strings
    if isinstance(value, bool):
        raise ValueError(f"{what} must be a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            pass
    raise ValueError(f"{what} must be a number (e.g. 0x10 or 16), got {value!r}")


def _parse_hex_bytes(value: Any, what: str) -> bytes:
    if not isinstance(value, str):
        # Unquoted YAML such as `data: 12` arrives as an int
        raise ValueError(f"{what} must be a quoted hex string like \"AA BB CC\" or \"12\", got {value!r}")
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise ValueError(f"{what} is not valid hex: {value!r}")


def _build_record(index: int, entry: Any) -> PatchRecord:
    name = f"records[{index}]"
    if not isinstance(entry, dict):
        raise ValueError(f"{name} must be a mapping with 'offset' and 'data' or 'rle'")
    if "offset" not in entry:
        raise ValueError(f"{name} is missing 'offset'")
    address = _parse_int(entry["offset"], f"{name}.offset")

    if "rle" in entry:
        if "data" in entry:
            raise ValueError(f"{name} must define either 'data' or 'rle', not both")
        rle = entry["rle"]
        if not isinstance(rle, dict) or "count" not in rle or "fill" not in rle:
            raise ValueError(f"{name}.rle must define 'count' and 'fill'")
        count = _parse_int(rle["count"], f"{name}.rle.count")
        fill = _parse_int(rle["fill"], f"{name}.rle.fill")
        if not 0 <= fill <= 0xFF:
            raise ValueError(f"{name}.rle.fill must be a byte in [0, 255], got {fill}")
        record: PatchRecord = RLERecord.at(address, count, fill)
    elif "data" in entry:
        record = LiteralRecord.at(address, _parse_hex_bytes(entry["data"], f"{name}.data"))
    else:
        raise ValueError(f"{name} must define 'data' or 'rle'")

    try:
        record.validate()
    except (RecordError, SizeMismatch) as e:
        raise ValueError(f"{name}: {e}") from e
    return record


def build_patch(manifest: dict[str, Any]) -> PatchFile:
    """Return a PatchFile described by a manifest mapping."""
    if not isinstance(manifest, dict):
        raise ValueError("Manifest must be a mapping with a 'records' list")
    entries = manifest.get("records") or []
    if not isinstance(entries, list):
        raise ValueError("'records' must be a list")
    truncate = _parse_int(manifest.get("truncate", 0), "truncate")
    if not 0 <= truncate <= 0xFFFF:
        raise ValueError(f"truncate must be in [0, 0xFFFF], got {truncate}")
    try:
        records = [_build_record(i, e) for i, e in enumerate(entries)]
    except RecordError as e:
        raise ValueError(str(e)) from e
    return PatchFile(records, truncate=truncate)


def patch_to_manifest(patch: PatchFile) -> dict[str, Any]:
    records = []
    for record in patch.records:
        entry: dict[str, Any] = {"offset": f"0x{record.address:06X}"}
        if record.is_rle:
            entry["rle"] = {"count": record.size, "fill": f"0x{record.data[0]:02X}"}
        else:
            entry["data"] = record.data.hex(" ").upper()
        records.append(entry)
    manifest: dict[str, Any] = {"records": records}
    if patch.truncate:
        manifest["truncate"] = patch.truncate
    return manifest


def dump_manifest(patch: PatchFile, path: str | Path | None = None) -> str:
    text = yaml.safe_dump(patch_to_manifest(patch), sort_keys=False)
    if path is not None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_text(text, encoding="utf-8")
    return text
