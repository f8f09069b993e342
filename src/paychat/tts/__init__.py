"""Text-to-speech for voice replies.

``PAYCHAT_TTS_PROVIDER`` picks the provider by name. Only the silent stub
ships here; real engines register themselves in ``PROVIDERS``.
"""

import logging
import os
from collections.abc import Callable

from paychat.tts.provider import TTSProvider, spoken_text
from paychat.tts.stub_provider import StubTTSProvider

logger = logging.getLogger(__name__)

__all__ = ["PROVIDERS", "TTSProvider", "StubTTSProvider", "get_tts_provider", "spoken_text"]

PROVIDERS: dict[str, Callable[[], TTSProvider]] = {"stub": StubTTSProvider}


def get_tts_provider() -> TTSProvider:
    name = os.environ.get("PAYCHAT_TTS_PROVIDER", "stub").strip().lower()
    factory = PROVIDERS.get(name)
    if factory is None:
        logger.warning("No TTS provider named %r, voice replies will be silent", name)
        factory = StubTTSProvider
    return factory()
