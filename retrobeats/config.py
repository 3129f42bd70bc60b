"""RETRO BEATS global configuration."""

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000
    env: str = "development"

    # Songs
    midi_dir: Path = Path("./public/MIDIs")
    midi_output_port: str = ""  # empty = mido default output
    skip_to_first_note_on: bool = True
    upload_dir: Path = Path(tempfile.gettempdir()) / "retrobeats-uploads"

    # Game
    reveal_tokens: int = 3
    match_threshold: float = 0.8
    match_distance: int = 100
    match_ignore_location: bool = True

    # Timers (seconds)
    consistency_interval_s: float = 5.0
    position_poll_interval_s: float = 0.1
    load_poll_interval_s: float = 0.1
    load_max_attempts: int = 50  # ~5s at the default poll interval

    model_config = {"env_prefix": "RETROBEATS_"}


settings = Settings()
