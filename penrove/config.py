"""Layout settings and editor feature flags."""

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PALETTE = ("#172A2E", "#22383C", "#051114")


def _known_fields(cls, data: dict) -> dict:
    # Filter to only known fields to handle schema evolution
    known = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in known}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    logger.warning("Ignoring %s=%r: not a boolean", name, raw)
    return default


@dataclass
class LayoutSettings:
    """Geometry constants for the tree layout."""
    node_width: float = 180
    horizontal_gap: float = 30
    vertical_gap: float = 120
    root_x: float = 300
    root_y: float = 50
    palette: Tuple[str, ...] = DEFAULT_PALETTE
    anchor_id: Optional[int] = 10

    def __post_init__(self):
        self.palette = tuple(self.palette) or DEFAULT_PALETTE

    def background_for_depth(self, depth: int) -> str:
        """Palette colour for a depth; deeper levels reuse the last colour."""
        return self.palette[min(depth, len(self.palette) - 1)]

    def to_json(self) -> str:
        data = asdict(self)
        data["palette"] = list(self.palette)
        return json.dumps(data)

    @classmethod
    def from_json(cls, data: Optional[str]) -> "LayoutSettings":
        if not data:
            return cls()
        try:
            return cls(**_known_fields(cls, json.loads(data)))
        except (json.JSONDecodeError, TypeError, AttributeError) as exc:
            logger.warning("Invalid layout settings, using defaults: %s", exc)
            return cls()

    @classmethod
    def from_env(cls) -> "LayoutSettings":
        """Defaults overridden by PENROVE_* environment variables."""
        base = cls()
        anchor = base.anchor_id
        raw_anchor = os.environ.get("PENROVE_ANCHOR_ID")
        if raw_anchor is not None:
            if raw_anchor.strip().lower() in ("", "none"):
                anchor = None
            else:
                try:
                    anchor = int(raw_anchor)
                except ValueError:
                    logger.warning("Ignoring PENROVE_ANCHOR_ID=%r: not an id", raw_anchor)
        return cls(
            node_width=_env_float("PENROVE_NODE_WIDTH", base.node_width),
            horizontal_gap=_env_float("PENROVE_HORIZONTAL_GAP", base.horizontal_gap),
            vertical_gap=_env_float("PENROVE_VERTICAL_GAP", base.vertical_gap),
            root_x=base.root_x,
            root_y=base.root_y,
            palette=base.palette,
            anchor_id=anchor,
        )


@dataclass
class EditorFeatures:
    """Optional capabilities layered on the shared engine."""
    relink: bool = True
    categories: bool = True

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: Optional[str]) -> "EditorFeatures":
        if not data:
            return cls()
        try:
            return cls(**_known_fields(cls, json.loads(data)))
        except (json.JSONDecodeError, TypeError, AttributeError) as exc:
            logger.warning("Invalid editor features, using defaults: %s", exc)
            return cls()

    @classmethod
    def from_env(cls) -> "EditorFeatures":
        base = cls()
        return cls(
            relink=_env_bool("PENROVE_RELINK", base.relink),
            categories=_env_bool("PENROVE_CATEGORIES", base.categories),
        )


@dataclass
class EditorConfig:
    """Bundle handed to the controller."""
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    features: EditorFeatures = field(default_factory=EditorFeatures)

    @classmethod
    def from_env(cls) -> "EditorConfig":
        return cls(layout=LayoutSettings.from_env(), features=EditorFeatures.from_env())
