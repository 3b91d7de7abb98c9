from pathlib import Path
import argparse
import logging
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.backends import backend_manager
from app.core.logging import configure_logging
from app.core.phone import mask_phone, normalize_e164_phone

logger = logging.getLogger("scripts.reset_rate_limit")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Clear the OTP issuance rate-limit counter for phone numbers.")
    parser.add_argument("phones", nargs="+", help="Phone numbers in E.164 format")
    args = parser.parse_args(argv)

    configure_logging()
    limiter = backend_manager.get_rate_limiter()
    for raw in args.phones:
        try:
            phone = normalize_e164_phone(raw)
        except ValueError as exc:
            parser.error(f"{raw!r}: {exc}")
        limiter.reset(phone)
        logger.info("Rate limit reset | phone=%s", mask_phone(phone))
    return 0


if __name__ == "__main__":
    sys.exit(main())
