#!/usr/bin/env python3
"""
Local scheduling harness (no HTTP).

Usage:
  STORE_PROVIDER=json python3 scripts/slots_local.py slots 2024-06-10
  python3 scripts/slots_local.py price 3000 --sessions 5 --special
  STORE_PROVIDER=json python3 scripts/slots_local.py book 2024-06-10 11:00 --client c1 --price 3000
  STORE_PROVIDER=json python3 scripts/slots_local.py eligibility <appointment_id>
  STORE_PROVIDER=json python3 scripts/slots_local.py candidates <appointment_id> 2024-06-11
  STORE_PROVIDER=json python3 scripts/slots_local.py reschedule <appointment_id> 2024-06-11 12:00

Use STORE_PROVIDER=json so bookings survive between invocations.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pydantic import ValidationError as PayloadError

from slotbook.application.dto.schemas import (
    AppointmentSummaryDTO,
    DiscountRequestDTO,
    EligibilityDTO,
    PricingResultDTO,
    RescheduleRecordDTO,
    SlotListDTO,
)
from slotbook.application.exceptions import SchedulingError
from slotbook.application.use_cases.pricing import compute_total
from slotbook.application.utils.date_parser import parse_date
from slotbook.core.logging_config import configure_logging
from slotbook.wiring.dependencies import get_container, get_discount_policy


def _print(payload) -> None:
    if isinstance(payload, list):
        print(json.dumps([p.model_dump() for p in payload], indent=2, ensure_ascii=False))
    else:
        print(payload.model_dump_json(indent=2))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scheduling core local harness")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("slots", help="list free slots for a date")
    p.add_argument("date")

    p = sub.add_parser("price", help="quote a purchase")
    p.add_argument("unit_price")
    p.add_argument("--sessions", type=int, default=1)
    p.add_argument("--special", action="store_true", help="special-category discount")

    p = sub.add_parser("book", help="create a pending_payment appointment")
    p.add_argument("date")
    p.add_argument("time")
    p.add_argument("--client", required=True)
    p.add_argument("--product", default=None)
    p.add_argument("--price", required=True)
    p.add_argument("--sessions", type=int, default=1)
    p.add_argument("--special", action="store_true")

    for name in ("confirm", "cancel", "eligibility", "history"):
        p = sub.add_parser(name)
        p.add_argument("appointment_id")

    p = sub.add_parser("candidates", help="slots an appointment may move to")
    p.add_argument("appointment_id")
    p.add_argument("date")

    p = sub.add_parser("reschedule")
    p.add_argument("appointment_id")
    p.add_argument("date")
    p.add_argument("time")
    p.add_argument("--by", default=None)
    p.add_argument("--reason", default=None)

    p = sub.add_parser("block", help="block a slot, or the whole day without --time")
    p.add_argument("date")
    p.add_argument("--time", default=None)
    p.add_argument("--reason", default=None)

    p = sub.add_parser("blocked-days")
    p.add_argument("start")
    p.add_argument("end")

    sub.add_parser("reminders", help="dispatch due reminders")
    return parser


def run(args: argparse.Namespace) -> None:
    container = get_container()
    availability = container["availability"]
    reschedule = container["reschedule"]
    booking = container["booking"]
    blocking = container["blocking"]

    if args.command == "slots":
        day = parse_date(args.date)
        _print(SlotListDTO.build(day, availability.available_slots(day)))
    elif args.command == "price":
        request = DiscountRequestDTO(
            unit_price=args.unit_price,
            session_count=args.sessions,
            special_category_selected=args.special,
        )
        _print(PricingResultDTO.from_result(compute_total(request.to_input(get_discount_policy()))))
    elif args.command == "book":
        appointment = booking.book(
            client_ref=args.client,
            product_ref=args.product,
            day=args.date,
            slot=args.time,
            unit_price=args.price,
            session_count=args.sessions,
            special_category_selected=args.special,
        )
        _print(AppointmentSummaryDTO.from_entity(appointment))
    elif args.command == "confirm":
        _print(AppointmentSummaryDTO.from_entity(booking.confirm_payment(args.appointment_id)))
    elif args.command == "cancel":
        _print(AppointmentSummaryDTO.from_entity(booking.cancel(args.appointment_id)))
    elif args.command == "eligibility":
        appointment = reschedule.get(args.appointment_id)
        _print(EligibilityDTO.from_result(reschedule.check_eligibility(appointment)))
    elif args.command == "candidates":
        appointment = reschedule.get(args.appointment_id)
        day = parse_date(args.date)
        _print(SlotListDTO.build(day, reschedule.list_candidate_slots(appointment, day)))
    elif args.command == "reschedule":
        moved = reschedule.reschedule(args.appointment_id, args.date, args.time, args.by, args.reason)
        _print(AppointmentSummaryDTO.from_entity(moved))
    elif args.command == "history":
        _print([RescheduleRecordDTO.from_record(r) for r in reschedule.history(args.appointment_id)])
    elif args.command == "block":
        if args.time:
            block = blocking.block_slot(args.date, args.time, args.reason)
        else:
            block = blocking.block_day(args.date, args.reason)
        print(block.id)
    elif args.command == "blocked-days":
        print(json.dumps([d.isoformat() for d in blocking.blocked_days(args.start, args.end)]))
    elif args.command == "reminders":
        for kind, appointment in container["reminders"].dispatch_due():
            print(f"{kind.value}: {appointment.id}")


def main() -> None:
    configure_logging()
    args = _build_parser().parse_args()
    try:
        run(args)
    except (SchedulingError, PayloadError) as e:
        print(f"ERROR ({type(e).__name__}): {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
