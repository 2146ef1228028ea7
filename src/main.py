"""Command line entry point for the OPERA booking connector."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from src.clients.errors import OperaClientError
from src.config import configure_logging, get_logger, settings
from src.config.catalog import load_catalog
from src.models.booking import ReservationIntent
from src.services import BookingService

logger = get_logger(__name__)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


def _print_json(value: Any) -> None:
    print(json.dumps(_to_jsonable(value), indent=2, default=str, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opera-booking",
        description="OPERA Cloud booking connector: availability, reservations and diagnostics",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    availability = subparsers.add_parser("availability", help="Search enriched availability")
    availability.add_argument("--check-in", required=True, help="Arrival date (YYYY-MM-DD)")
    availability.add_argument("--check-out", required=True, help="Departure date (YYYY-MM-DD)")
    availability.add_argument("--adults", type=int, default=2)
    availability.add_argument("--children", type=int, default=0)
    availability.add_argument("--rate-plan", dest="rate_plan_code")
    availability.add_argument("--promo-code")
    availability.add_argument("--language", choices=["en", "es"], default="en")
    availability.add_argument(
        "--diagnose",
        action="store_true",
        help="Compare returned room types and rate plans with the catalog",
    )

    reserve = subparsers.add_parser("reserve", help="Create a reservation from a JSON intent file")
    reserve.add_argument("--intent", required=True, type=Path, help="Path to the intent JSON")
    reserve.add_argument("--idempotency-key", help="Reuse the key of a previous attempt")

    lookup = subparsers.add_parser("lookup", help="Fetch a reservation")
    selector = lookup.add_mutually_exclusive_group(required=True)
    selector.add_argument("--id", dest="reservation_id")
    selector.add_argument("--confirmation", dest="confirmation_number")

    subparsers.add_parser("catalog-check", help="Validate the room/rate catalog")
    subparsers.add_parser("token-info", help="Decode the current access token")
    subparsers.add_parser("guarantee-codes", help="List hotel guarantee codes")

    return parser


def _check_catalog() -> dict[str, Any]:
    catalog = load_catalog(settings.opera.catalog_path)
    return {
        "success": True,
        "default_rate_plan_code": catalog.default_rate_plan_code,
        "room_types": sorted(catalog.room_types),
        "rate_plans": sorted(catalog.rate_plans),
    }


async def _run_command(args: argparse.Namespace) -> Any:
    async with BookingService.from_settings() as service:
        if args.command == "availability":
            search = {
                "check_in": args.check_in,
                "check_out": args.check_out,
                "adults": args.adults,
                "children": args.children,
                "rate_plan_code": args.rate_plan_code,
                "promo_code": args.promo_code,
            }
            if args.diagnose:
                return await service.diagnose_availability(**search)
            return await service.check_availability(**search, language=args.language)

        if args.command == "reserve":
            intent = ReservationIntent.model_validate_json(args.intent.read_text(encoding="utf-8"))
            return await service.create_reservation(intent, idempotency_key=args.idempotency_key)

        if args.command == "lookup":
            return await service.lookup_reservation(
                reservation_id=args.reservation_id,
                confirmation_number=args.confirmation_number,
            )

        if args.command == "token-info":
            return await service.inspect_token()

        if args.command == "guarantee-codes":
            return await service.list_guarantee_codes()

    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, run one command and print its JSON result.

    Returns:
        0 on success, 1 on any failure
    """
    args = build_parser().parse_args(argv)
    logger.info("Starting OPERA booking connector", environment=settings.environment, command=args.command)

    try:
        if args.command == "catalog-check":
            result: Any = _check_catalog()
        else:
            result = await _run_command(args)
    except OperaClientError as e:
        logger.error("OPERA command failed", command=args.command, error=str(e), kind=e.kind)
        _print_json({"success": False, "error": e.to_dict()})
        return 1
    except ValidationError as e:
        logger.error("Invalid input", command=args.command, error_count=e.error_count())
        _print_json({"success": False, "error": {"kind": "validation_error", "errors": e.errors(include_url=False)}})
        return 1
    except (ValueError, OSError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        _print_json({"success": False, "error": {"kind": "error", "message": str(e)}})
        return 1

    _print_json(result)
    return 0


def run_sync(argv: Optional[list[str]] = None) -> int:
    """Run the async main function synchronously.

    Returns:
        Exit code from main()
    """
    return asyncio.run(main(argv))


def cli() -> None:
    configure_logging()
    sys.exit(run_sync())


if __name__ == "__main__":
    cli()
