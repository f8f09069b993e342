"""TTS provider interface and reply-to-speech text cleanup."""

import re
from abc import ABC, abstractmethod

# Emoji, pictographs and the joiners/selectors that glue them together
_EMOJI = re.compile("[\U0001f000-\U0001faff\u2600-\u27bf\u2b00-\u2bff\ufe0f\u200d]")
# Chat markup: *bold*, ~strike~, `code`
_MARKUP = re.compile(r"[*~`]")


def spoken_text(text: str) -> str:
    """Strip chat formatting from a reply so a voice does not read it out."""
    text = _MARKUP.sub("", _EMOJI.sub("", text)).replace("_", " ")
    return " ".join(text.split())


class TTSProvider(ABC):
    """Turns reply text into an audio attachment."""

    content_type = "audio/wav"

    @abstractmethod
    def synthesize(self, text: str, voice: str | None = None, locale: str = "en") -> tuple[bytes, str]:
        """Return ``(audio_bytes, content_type)`` for already-cleaned text."""
