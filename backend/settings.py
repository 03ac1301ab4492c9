import logging
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    log_file: str = "analysis_log.txt"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    max_upload_bytes: int = 15 * 1024 * 1024

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            log_file=env.get("SKIN_TONE_LOG_FILE", defaults.log_file),
            log_level=env.get("SKIN_TONE_LOG_LEVEL", defaults.log_level).upper(),
            host=env.get("SKIN_TONE_HOST", defaults.host),
            port=int(env.get("SKIN_TONE_PORT", defaults.port)),
            max_upload_bytes=int(env.get("SKIN_TONE_MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
        )


def configure_logging(settings):
    """File logging for the service; an empty log file path logs to stderr."""
    kwargs = {
        'level': getattr(logging, settings.log_level, logging.INFO),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    }
    if settings.log_file:
        kwargs['filename'] = settings.log_file
    logging.basicConfig(**kwargs)
