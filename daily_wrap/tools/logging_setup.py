from __future__ import annotations

import logging
from pathlib import Path
from daily_wrap.config.settings import get_settings


def setup_logging() -> None:
    s = get_settings()
    log_path = s.log_file or "logs/run.log"

    Path(log_path).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, s.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    # feed fetches run in threads; keep urllib3 quiet below WARNING
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
