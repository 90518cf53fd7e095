"""User settings for the engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class SanctumSettings:
    """Settings shared between the GUI and the engine."""

    common_scan_areas: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"common_scan_areas": [str(p) for p in self.common_scan_areas]}

    @classmethod
    def from_dict(cls, data: Any) -> SanctumSettings:
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        try:
            areas = data["common_scan_areas"]
        except KeyError:
            raise ValueError("missing field `common_scan_areas`") from None
        if not isinstance(areas, list) or not all(isinstance(a, str) for a in areas):
            raise ValueError("field `common_scan_areas` must be a list of strings")
        return cls(common_scan_areas=[Path(a) for a in areas])