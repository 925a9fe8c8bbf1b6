"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables (and the OpenClaw config file for the token)
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from observability.logger import log_event


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to gateway, engine adapters and the response orchestrator.
    """

    # ------------------------------------------------------------------
    # Environment / serving
    # ------------------------------------------------------------------

    env: str
    host: str
    port: int
    cors_origins: tuple[str, ...]

    # ------------------------------------------------------------------
    # sherpa-onnx engines
    # ------------------------------------------------------------------

    sherpa_runtime: Path
    tts_model_dir: Path
    tts_model_name: str
    tts_speaker_id: int
    whisper_model_dir: Path
    whisper_model_prefix: str

    # ------------------------------------------------------------------
    # Transcoder
    # ------------------------------------------------------------------

    ffmpeg_bin: str

    # ------------------------------------------------------------------
    # Language model endpoints
    # ------------------------------------------------------------------

    gateway_host: str
    gateway_port: int
    gateway_token: str
    gateway_model: str

    fallback_base_url: str
    fallback_model: str

    # ------------------------------------------------------------------
    # Session resources
    # ------------------------------------------------------------------

    temp_dir: Path
    debug_capture_path: Path | None
    engine_timeout_s: float | None
    max_pending_audio: int

    @property
    def gateway_base_url(self) -> str:
        return f"http://{self.gateway_host}:{self.gateway_port}/v1"

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        The gateway token falls back to the OpenClaw config file when
        OPENCLAW_TOKEN is unset or empty.
        """
        home = Path.home()
        tools = home / ".openclaw" / "tools" / "sherpa-onnx-tts"

        token = os.environ.get("OPENCLAW_TOKEN", "")
        if not token:
            token = read_gateway_token(
                Path(os.environ.get("OPENCLAW_CONFIG", str(home / ".openclaw" / "openclaw.json")))
            )

        debug_capture = os.environ.get("DEBUG_CAPTURE_PATH", "/tmp/voice-chat-debug-last.audio")
        engine_timeout = float(os.environ.get("ENGINE_TIMEOUT_S", "120"))

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            host=os.environ.get("HOST", "127.0.0.1"),
            port=int(os.environ.get("PORT", "3335")),
            cors_origins=tuple(
                o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
            ),

            sherpa_runtime=Path(os.environ.get("SHERPA_RUNTIME", str(tools / "runtime"))),
            tts_model_dir=Path(os.environ.get(
                "SHERPA_TTS_MODEL",
                str(tools / "models" / "vits-piper-en_US-libritts_r-medium"),
            )),
            tts_model_name=os.environ.get("SHERPA_TTS_MODEL_NAME", "en_US-libritts_r-medium"),
            tts_speaker_id=int(os.environ.get("TTS_SPEAKER_ID", "0")),
            whisper_model_dir=Path(os.environ.get(
                "WHISPER_MODEL",
                str(tools / "models" / "sherpa-onnx-whisper-small.en"),
            )),
            whisper_model_prefix=os.environ.get("WHISPER_MODEL_PREFIX", "small.en"),

            ffmpeg_bin=os.environ.get("FFMPEG_BIN", "ffmpeg"),

            gateway_host=os.environ.get("OPENCLAW_HOST", "127.0.0.1"),
            gateway_port=int(os.environ.get("OPENCLAW_PORT", "18789")),
            gateway_token=token,
            gateway_model=os.environ.get("OPENCLAW_MODEL", "openclaw:main"),

            fallback_base_url=os.environ.get("OLLAMA_BASE_URL", "http://127.0.0.1:11434/v1"),
            fallback_model=os.environ.get("OLLAMA_MODEL", "qwen2.5:14b"),

            temp_dir=Path(os.environ.get("TEMP_DIR", "/tmp")),
            debug_capture_path=Path(debug_capture) if debug_capture else None,
            engine_timeout_s=engine_timeout if engine_timeout > 0 else None,
            max_pending_audio=int(os.environ.get("MAX_PENDING_AUDIO", "2")),
        )


def read_gateway_token(path: Path) -> str:
    """
    Read gateway.auth.token from an OpenClaw JSON config file.

    Returns "" when the file is missing or malformed; the primary
    endpoint is then skipped.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return ""
    except (OSError, ValueError) as e:
        log_event({
            "event_type": "GATEWAY_CONFIG_READ_ERROR",
            "path": str(path),
            "error": str(e),
        })
        return ""

    node: object = data
    for key in ("gateway", "auth", "token"):
        if not isinstance(node, dict):
            return ""
        node = node.get(key)

    return node if isinstance(node, str) else ""
