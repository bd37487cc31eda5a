"""User-facing alerts for Readme Sync.

Most failures are retried silently; the few that need a person (an
install root that cannot be resolved, for instance) go through
:class:`Notifier`.  On Windows the message is spoken through
accessible_output2 (JAWS, NVDA, Narrator); on macOS through ``say``.
Elsewhere it only reaches the log.
"""

import logging
import subprocess
import threading

from readme_sync.platform_utils import IS_MACOS, IS_WINDOWS, play_error_sound

logger = logging.getLogger(__name__)

# ---- accessible_output2 (Windows screen readers) ----
_HAS_AO2 = False
if IS_WINDOWS:
    try:
        from accessible_output2.outputs.auto import (
            Auto as _AO2Auto,  # type: ignore[import-untyped]
        )

        _HAS_AO2 = True
    except ImportError:
        logger.warning(
            "accessible_output2 not installed; spoken alerts disabled."
        )


class Notifier:
    """Thread-safe blocking-alert channel.

    ``alert(text)`` always logs at error level, optionally plays the OS
    alert sound, and speaks the text when a speech backend exists.
    Speech runs on a daemon thread so callers never block on it.
    """

    def __init__(self, play_sound: bool = True, speak: bool = True) -> None:
        self.play_sound = play_sound
        self._speak = speak
        self._output = _AO2Auto() if (_HAS_AO2 and speak) else None  # type: ignore[name-defined]
        self._lock = threading.Lock()
        self._history: list[str] = []

    @property
    def history(self) -> list[str]:
        """Alerts raised so far, oldest first."""
        with self._lock:
            return list(self._history)

    def alert(self, text: str) -> None:
        """Surface *text* to the user."""
        with self._lock:
            self._history.append(text)
        logger.error("%s", text)
        if self.play_sound:
            play_error_sound()
        if not self._speak or (not self._output and not IS_MACOS):
            return
        threading.Thread(
            target=self._do_speak, args=(text,), daemon=True, name="Notify"
        ).start()

    def _do_speak(self, text: str) -> None:
        try:
            if self._output:
                self._output.speak(text, interrupt=True)
            elif IS_MACOS:
                subprocess.run(
                    ["say", text],
                    timeout=15,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
        except Exception:
            logger.debug("Speech notification failed.", exc_info=True)
