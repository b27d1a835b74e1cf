"""
Content hashing for selection outputs and cached series files.

Payloads are reduced to plain JSON before hashing: dataclasses such as
PairRecord and pydantic models become dicts, tuples become lists and
non-finite floats become null, so equal selections hash equally however
they were assembled.
"""

import dataclasses
import hashlib
import json
import math
from pathlib import Path
from typing import Any

from pydantic import BaseModel

PREFIX = "sha256:"


def canonicalize(value: Any) -> Any:
    """Reduce a selection payload to JSON-native values."""
    if isinstance(value, BaseModel):
        return canonicalize(value.model_dump(mode="json"))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return canonicalize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(k): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Path):
        return value.as_posix()
    return value


def compute_fingerprint(data: Any) -> str:
    """
    Hash a selection payload.

    Keys are sorted, so dict insertion order does not matter; list order
    does, since universe and selection order are part of the result.

    Returns:
        "sha256:<64-char-hex>"
    """
    canonical = json.dumps(
        canonicalize(data),
        sort_keys=True,
        separators=(",", ":"),
        allow_nan=False
    )
    return PREFIX + hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_file_fingerprint(path: str | Path) -> str:
    """Hash the bytes of a written artifact or cached series file."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while True:
            chunk = f.read(65536)
            if not chunk:
                break
            digest.update(chunk)
    return PREFIX + digest.hexdigest()
