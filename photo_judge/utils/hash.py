"""Hash utilities for checkpoint config drift detection.

Provides a stable SHA-256 fingerprint of the competition configuration so a
resumed batch can tell whether the criteria changed underneath it.
"""

import hashlib
import json
from typing import Any, Mapping, Union

from pydantic import BaseModel


def canonical_json(value: Any) -> str:
    """Serialize a value to JSON with keys sorted at every level."""
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )


def compute_config_hash(config: Union[Mapping[str, Any], BaseModel, None]) -> str:
    """Calculate a stable SHA-256 hash of a competition configuration.

    The hash is independent of key insertion order. Pydantic models are
    dumped using their JSON aliases, with unset optional sections omitted.

    Args:
        config: Configuration mapping or model.

    Returns:
        SHA-256 hash prefixed with 'sha256:' for clarity.
    """
    if isinstance(config, BaseModel):
        data: Any = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    else:
        data = dict(config or {})

    json_str = canonical_json(data)
    hash_bytes = hashlib.sha256(json_str.encode("utf-8")).hexdigest()

    return f"sha256:{hash_bytes}"
