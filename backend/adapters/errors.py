"""
Engine error taxonomy.

Every failure of an external engine (transcoder, recognizer, synthesizer)
surfaces as an EngineError subclass. The session pipeline turns any of them
into a single client-facing `error` event and keeps the session usable.

Language-model endpoint failures are NOT here: they never leave the
response orchestrator (see adapters.llm.chat.EndpointError).
"""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for external engine failures."""


class ConversionError(EngineError):
    """Transcoder exited non-zero or could not be started."""


class SttError(EngineError):
    """Speech recognizer exited abnormally or could not be started."""


class TtsError(EngineError):
    """Speech synthesizer exited non-zero or produced no readable output."""


class ProcessTimeoutError(EngineError):
    """An external process exceeded its time budget and was killed."""
