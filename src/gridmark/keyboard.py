"""
Arrow-key nudging with acceleration.

The host owns the timer: it forwards key presses and releases to an
ArrowKeyMover and calls ``tick()`` every ``settings.step_interval``
milliseconds while ``is_running`` is true. The first press moves immediately,
then every tick moves one step and speeds up by ``acceleration`` until
``max_speed`` is reached. Releasing every arrow key resets the speed.
"""

import math
from enum import Enum
from typing import Callable, Optional, Set, Tuple

from .config import EditorSettings


class ArrowKey(Enum):
    LEFT = "ArrowLeft"
    RIGHT = "ArrowRight"
    UP = "ArrowUp"
    DOWN = "ArrowDown"

    @classmethod
    def parse(cls, name: str) -> Optional["ArrowKey"]:
        """Accept "ArrowLeft" style names or plain "left"; None for other keys."""
        for key in cls:
            if name in (key.value, key.name.lower()):
                return key
        return None


class ArrowKeyMover:
    """
    Turns held arrow keys into accelerating move steps.

    Attributes:
        settings: Speed settings.
        enabled: Whether key input is accepted.
        speed: Distance of the next step.
    """

    def __init__(
        self,
        on_move: Callable[[float, float], None],
        settings: Optional[EditorSettings] = None,
        on_finish: Optional[Callable[[], None]] = None,
    ):
        self.on_move = on_move
        self.on_finish = on_finish
        self.settings = settings or EditorSettings()
        self.enabled = True
        self.speed = self.settings.base_speed
        self._pressed: Set[ArrowKey] = set()

    @property
    def is_running(self) -> bool:
        return self.enabled and bool(self._pressed)

    def update_settings(self, settings: EditorSettings) -> None:
        self.settings = settings
        self.speed = min(max(self.speed, settings.base_speed), settings.max_speed)

    def direction(self) -> Tuple[int, int]:
        dx = (ArrowKey.RIGHT in self._pressed) - (ArrowKey.LEFT in self._pressed)
        dy = (ArrowKey.DOWN in self._pressed) - (ArrowKey.UP in self._pressed)
        return dx, dy

    def press(self, name: str) -> bool:
        """
        Handle a key press.

        Returns:
            True if the key is an arrow key and was accepted.
        """
        key = ArrowKey.parse(name)
        if key is None or not self.enabled:
            return False
        if key not in self._pressed:
            starting = not self._pressed
            self._pressed.add(key)
            if starting:
                self.speed = self.settings.base_speed
                self.tick()
        return True

    def release(self, name: str) -> bool:
        key = ArrowKey.parse(name)
        if key is None or key not in self._pressed:
            return False
        self._pressed.discard(key)
        if not self._pressed:
            self._stop()
        return True

    def tick(self) -> Optional[Tuple[float, float]]:
        """
        Perform one movement step.

        Diagonal steps are normalized so their length equals the current
        speed.

        Returns:
            The (dx, dy) applied, or None if no movement happened.
        """
        if not self.enabled:
            return None
        dx, dy = self.direction()
        if dx == 0 and dy == 0:
            self.speed = self.settings.base_speed
            return None

        magnitude = math.hypot(dx, dy)
        step = (dx / magnitude * self.speed, dy / magnitude * self.speed)
        self.on_move(*step)
        self.speed = min(self.speed + self.settings.acceleration, self.settings.max_speed)
        return step

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable input; disabling drops held keys."""
        if not enabled and self._pressed:
            self._pressed.clear()
            self._stop()
        self.enabled = enabled
        self.speed = self.settings.base_speed

    def _stop(self) -> None:
        self.speed = self.settings.base_speed
        if self.on_finish is not None:
            self.on_finish()
