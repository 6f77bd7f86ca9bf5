"""
Conversation logger — writes each message sent and the reply received to a text file.

One log file is created per Client, named by timestamp and model.
Each exchange is recorded as a block showing the prompt, a summary of any
attached images, and the raw response text (or the error that ended it).

Log files land in ./logs/ by default (created automatically).
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from aipim.providers.base import Message

_SEP = "=" * 80
_THIN = "-" * 80


class ConversationLogger:
    def __init__(self, log_dir: Path, model: str) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._path = log_dir / f"messages_{timestamp}_{_safe(model)}.log"
        self._exchange = 0
        self._write(
            f"{_SEP}\n"
            f"  AIPIM — Message Log\n"
            f"  Model: {model}\n"
            f"  Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"{_SEP}\n"
        )

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def log_request(self, *, provider: str, model: str, message: Message) -> None:
        self._exchange += 1
        lines: list[str] = [
            f"\n{_SEP}",
            f"  #{self._exchange} — {provider} / {model}",
            f"  {datetime.now().strftime('%H:%M:%S')}",
            _SEP,
            "\n[USER]",
            message.text,
        ]
        for image in message.images:
            lines.append(f"<image: {image.mime_type}, {len(image.data)} base64 chars>")
        self._write("\n".join(lines) + "\n")

    def log_response(self, *, text: str) -> None:
        lines = [
            f"\n{_THIN}",
            "[RESPONSE]",
            text if text else "(empty)",
            _THIN,
        ]
        self._write("\n".join(lines) + "\n")

    def log_error(self, *, error: Exception) -> None:
        lines = [
            f"\n{_THIN}",
            f"[ERROR — {type(error).__name__}]",
            str(error),
            _THIN,
        ]
        self._write("\n".join(lines) + "\n")

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _write(self, text: str) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(text)

    @property
    def path(self) -> Path:
        return self._path


def _safe(name: str) -> str:
    """Strip characters that are problematic in filenames."""
    return "".join(c if c.isalnum() or c in " _-." else "_" for c in name).strip()
