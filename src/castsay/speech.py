"""Speech URL builder.

The Cast device fetches the spoken audio itself, so all we hand it is a
Google Translate TTS URL that returns an MP3 for the text.
"""

from __future__ import annotations

from urllib.parse import quote, urlencode

TTS_ENDPOINT = "https://translate.google.com/translate_tts"
DEFAULT_LANGUAGE = "en"


def tts_url(text, language=DEFAULT_LANGUAGE):
    """Return the URL a Cast device can fetch to play ``text`` as speech."""
    query = urlencode(
        {"ie": "UTF-8", "q": text, "tl": language, "client": "tw-ob"},
        quote_via=quote,
    )
    return f"{TTS_ENDPOINT}?{query}"
