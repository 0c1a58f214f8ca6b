"""System states and the charging task."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Protocol

from finlogger.conio import NL, Console
from finlogger.flog import FaultLog, FlogCode

CLI_INTERRUPT_PHRASE = "#CLI"

CHARGE_LED_COLOR = "yellow"
CHARGE_LED_PATTERN = "solid"
CHARGE_LED_PERIOD = 0
CHARGE_LED_PRIORITY = "important"


class State(Enum):
    """States of the device's state machine."""

    CLI = auto()
    DEEP_SLEEP = auto()
    CHARGE = auto()
    UPLOAD = auto()
    DEPLOYED = auto()
    MFG_TEST = auto()


class _Charger(Protocol):
    has_charger: bool

    def start(self) -> None: ...

    def stop(self) -> None: ...


@dataclass
class _LedStatus:
    color: str = ""
    pattern: str = ""
    period: int = 0
    priority: str = ""
    active: bool = False


def _monotonic_ms() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


class ChargeTask:
    """Waits while the charger is connected; typing ``#CLI`` leaves for the CLI."""

    def __init__(self, console: Console, charger: _Charger, fault_log: FaultLog,
                 clock: Optional[Callable[[], int]] = None,
                 idle: Optional[Callable[[], None]] = None) -> None:
        self.console = console
        self.charger = charger
        self.fault_log = fault_log
        self.led = _LedStatus()
        self.start_time = 0
        self._clock = clock if clock is not None else _monotonic_ms()
        self._idle = idle if idle is not None else (lambda: time.sleep(0))
        self._typed: deque = deque(maxlen=len(CLI_INTERRUPT_PHRASE))

    def init(self) -> None:
        """Start charger monitoring and show the charging indicator."""
        self.console.printf("Entering SYSTEM_STATE_CHARGING" + NL)
        self.charger.start()
        self.led = _LedStatus(
            color=CHARGE_LED_COLOR,
            pattern=CHARGE_LED_PATTERN,
            period=CHARGE_LED_PERIOD,
            priority=CHARGE_LED_PRIORITY,
            active=True,
        )
        self.start_time = self._clock()

    def run(self) -> State:
        """Loop until the CLI phrase is typed or the charger goes away."""
        while True:
            if self.console.kbhit():
                self._typed.append(self.console.getch())
                if "".join(self._typed) == CLI_INTERRUPT_PHRASE:
                    return State.CLI
            if not self.charger.has_charger:
                self.fault_log.add_error(FlogCode.CHARGER_REMOVED, 0)
                self.console.printf("Going to sleep" + NL)
                return State.DEEP_SLEEP
            self._idle()

    def exit(self) -> None:
        """Stop charger monitoring and turn the indicator off."""
        self.charger.stop()
        self.led.active = False