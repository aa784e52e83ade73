"""
Editor settings.

Snap and movement-speed settings are owned by the host, which persists them
in its own key/value store. The engine receives them as an EditorSettings
value at session start and through explicit update calls; it never reads
storage itself.
"""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping

# Keys as persisted by browser front ends.
CAMEL_CASE_KEYS = {
    "baseSpeed": "base_speed",
    "maxSpeed": "max_speed",
    "acceleration": "acceleration",
    "stepInterval": "step_interval",
    "snapEnabled": "snap_enabled",
    "snapThreshold": "snap_threshold",
}


@dataclass(frozen=True)
class EditorSettings:
    """
    User-tunable editing settings.

    Attributes:
        base_speed: Arrow-key nudge distance of the first step, in pixels.
        max_speed: Upper bound on the nudge distance per step.
        acceleration: Increase of the nudge distance per held step.
        step_interval: Milliseconds between nudge steps (host timer period).
        snap_enabled: Whether move/resize snapping is active.
        snap_threshold: Snap distance in screen pixels.
    """

    base_speed: float = 0.5
    max_speed: float = 5.0
    acceleration: float = 0.1
    step_interval: float = 16.0
    snap_enabled: bool = True
    snap_threshold: float = 5.0

    def __post_init__(self):
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name == "snap_enabled":
                if not isinstance(value, bool):
                    raise ValueError(f"{item.name} must be a boolean, got {value!r}")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{item.name} must be a number, got {value!r}")
            if value < 0:
                raise ValueError(f"{item.name} must not be negative, got {value!r}")
        if self.max_speed < self.base_speed:
            raise ValueError("max_speed must be at least base_speed")

    def updated(self, **changes: Any) -> "EditorSettings":
        """Return a validated copy with some settings changed."""
        return replace(self, **changes)

    def to_mapping(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, store: Mapping[str, Any]) -> "EditorSettings":
        """
        Read settings from a key/value mapping.

        Keys may be snake_case or the camelCase names used by browser
        front ends. Unknown keys are ignored and missing keys keep their
        defaults.

        Raises:
            ValueError: If a present value is of the wrong type or negative.
        """
        known = {item.name for item in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in store.items():
            name = CAMEL_CASE_KEYS.get(key, key)
            if name in known:
                values[name] = value
        return cls(**values)
