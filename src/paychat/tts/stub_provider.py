"""Stub TTS provider for development and tests."""

import struct

from paychat.tts.provider import TTSProvider

SAMPLE_RATE = 8000
# Roughly 12 spoken characters per second
CHARS_PER_SECOND = 12


class StubTTSProvider(TTSProvider):
    """Returns a silent mono WAV whose length scales with the text."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def synthesize(self, text: str, voice: str | None = None, locale: str = "en") -> tuple[bytes, str]:
        self.calls.append(text)
        return self._silent_wav(max(1, len(text) // CHARS_PER_SECOND)), self.content_type

    @staticmethod
    def _silent_wav(duration_seconds: int) -> bytes:
        bytes_per_sample = 2
        data = bytes(duration_seconds * SAMPLE_RATE * bytes_per_sample)
        header = struct.pack(
            "<4sI4s4sIHHIIHH4sI",
            b"RIFF",
            36 + len(data),
            b"WAVE",
            b"fmt ",
            16,  # PCM header size
            1,  # PCM
            1,  # mono
            SAMPLE_RATE,
            SAMPLE_RATE * bytes_per_sample,
            bytes_per_sample,
            bytes_per_sample * 8,
            b"data",
            len(data),
        )
        return header + data
