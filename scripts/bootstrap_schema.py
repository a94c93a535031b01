"""
Probe the configured backend for the PT-Log schema and optionally create it.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ptlog.backends import build_engine, select_backend
from ptlog.config import DB_TYPE_ALIASES, get_settings
from ptlog.errors import ConfigurationError
from ptlog.schema import SchemaState, bootstrap_schema

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="PT-Log schema bootstrap")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Create the schema if missing, even when auto-init is disabled",
    )
    parser.add_argument(
        "--db-type",
        choices=sorted(DB_TYPE_ALIASES),
        default=None,
        help="Override db_type",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    if args.db_type:
        settings = settings.model_copy(update={"db_type": DB_TYPE_ALIASES[args.db_type]})

    try:
        profile = select_backend(settings)
        engine = build_engine(settings, profile)
        state = bootstrap_schema(
            engine,
            auto_init=args.apply or profile.auto_init,
            backend_name=profile.name,
        )
    except ConfigurationError as err:
        logger.error("%s", err)
        return 1

    engine.dispose()
    logger.info("Schema state for %s: %s", profile.name, state.value)
    return 0 if state is SchemaState.READY else 2


if __name__ == "__main__":
    raise SystemExit(main())
