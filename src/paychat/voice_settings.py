"""Per-user voice reply preferences."""

import logging
from enum import Enum

from .store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)


class VoiceMode(str, Enum):
    ON = "on"  # voice replies when the user speaks or asks for voice
    OFF = "off"  # text only
    ONLY = "only"  # every reply is spoken, without text


DEFAULT_VOICE_MODE = VoiceMode.ON


class VoiceSettings:
    """Stores each subject's voice mode under ``voice:<subject>``."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    @staticmethod
    def _key(subject_id: str) -> str:
        return f"voice:{subject_id}"

    def get_mode(self, subject_id: str) -> VoiceMode:
        try:
            raw = self.store.get(self._key(subject_id))
        except StoreError as e:
            logger.warning("Could not read voice mode for %s: %s", subject_id, e)
            return DEFAULT_VOICE_MODE
        if raw is None:
            return DEFAULT_VOICE_MODE
        try:
            return VoiceMode(raw)
        except ValueError:
            return DEFAULT_VOICE_MODE

    def set_mode(self, subject_id: str, mode: VoiceMode) -> None:
        self.store.set(self._key(subject_id), mode.value)

    def should_speak(self, subject_id: str, is_voice_input: bool, voice_requested: bool) -> tuple[bool, bool]:
        """Decide whether a reply is spoken.

        Returns:
            Tuple of (speak, voice_only)
        """
        mode = self.get_mode(subject_id)
        if mode is VoiceMode.ONLY:
            return True, True
        if mode is VoiceMode.OFF:
            return voice_requested, False
        return voice_requested or is_voice_input, False
