"""
Create (or reset) the VideoTube schema.

What it does:
- Creates all tables registered on the SQLAlchemy metadata.
- With --reset, drops them first (dev only).

Guardrails:
- --reset requires ENV=dev
- --reset requires confirmation prompt unless --yes is passed
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow `import videotube.*` from backend/
REPO_ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))


from videotube.core.base import Base  # noqa: E402
from videotube.core.config import settings  # noqa: E402
from videotube.core.database import engine, init_db  # noqa: E402
from videotube.core.logging_config import configure_logging  # noqa: E402

logger = logging.getLogger("init_db")


def confirm_or_exit(assume_yes: bool) -> None:
    if assume_yes:
        return
    answer = input("This will DROP all VideoTube tables. Type 'reset' to continue: ").strip()
    if answer != "reset":
        print("Aborted.")
        sys.exit(1)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the VideoTube database schema.")
    parser.add_argument("--reset", action="store_true", help="drop all tables before creating them (dev only)")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)

    if args.reset:
        if settings.ENV != "dev":
            logger.error("Refusing to reset: ENV=%s (must be dev)", settings.ENV)
            return 2
        confirm_or_exit(args.yes)
        # Registers models on the metadata before drop_all.
        init_db()
        Base.metadata.drop_all(bind=engine)
        logger.info("Dropped all tables")

    init_db()
    logger.info("Schema ready at %s", engine.url.render_as_string(hide_password=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
