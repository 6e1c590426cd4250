from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any

from slotbook.application.exceptions import AppointmentNotFound, SlotConflict
from slotbook.application.ports.appointment_store import AppointmentMutation, AppointmentStorePort
from slotbook.application.ports.blocked_slot_store import BlockedSlotStorePort
from slotbook.application.utils.date_parser import format_date, format_slot_time, parse_date, parse_slot_time
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.blocked_slot import BlockedSlot
from slotbook.domain.entities.reschedule import RescheduleRecord

logger = logging.getLogger(__name__)


class _JsonFile:
    """One JSON document on disk, rewritten atomically via a temp file and rename."""

    def __init__(self, path: Path, default: dict[str, Any]) -> None:
        self._path = path
        self._default = default

    def load(self) -> dict[str, Any]:
        if not self._path.exists():
            return json.loads(json.dumps(self._default))
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            # never fall back to an empty store
            raise RuntimeError(f"Corrupted store file {self._path}: {e}") from e
        if "version" not in data:
            data["version"] = 1
        return data

    def save(self, data: dict[str, Any]) -> None:
        temp_path = self._path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
        except Exception:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temp file", extra={"path": str(temp_path)})
            raise


class JsonAppointmentStore(AppointmentStorePort):
    def __init__(self, data_dir: str = "./data") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file = _JsonFile(
            self._data_dir / "appointments.json",
            {"appointments": {}, "reschedules": [], "version": 1},
        )
        self._lock = threading.Lock()

    def list_by_date(self, day: date) -> list[Appointment]:
        return [a for a in self._load_all() if a.date == day]

    def list_by_date_range(self, start: date, end: date) -> list[Appointment]:
        return [a for a in self._load_all() if start <= a.date <= end]

    def get(self, appointment_id: str) -> Appointment:
        with self._lock:
            data = self._file.load()
            return self._get_from(data, appointment_id)

    def add(self, appointment: Appointment) -> Appointment:
        with self._lock:
            data = self._file.load()
            if appointment.id in data["appointments"]:
                raise SlotConflict(f"Appointment {appointment.id} already exists")
            self._ensure_slot_free(data, appointment)
            data["appointments"][appointment.id] = _serialize_appointment(appointment)
            self._file.save(data)
            return appointment

    def transition(
        self,
        appointment_id: str,
        mutation: AppointmentMutation,
        expected_version: int | None = None,
    ) -> Appointment:
        with self._lock:
            data = self._file.load()
            current = self._get_from(data, appointment_id)
            if expected_version is not None and current.version != expected_version:
                raise SlotConflict(f"Appointment {appointment_id} was modified concurrently")

            updated = replace(mutation(current), id=current.id, version=current.version + 1)
            self._ensure_slot_free(data, updated)
            data["appointments"][appointment_id] = _serialize_appointment(updated)
            self._file.save(data)
            return updated

    def record_reschedule(self, record: RescheduleRecord) -> None:
        with self._lock:
            data = self._file.load()
            data.setdefault("reschedules", []).append(_serialize_record(record))
            self._file.save(data)

    def list_reschedules(self, appointment_id: str) -> list[RescheduleRecord]:
        with self._lock:
            data = self._file.load()
        records = [
            _deserialize_record(r)
            for r in data.get("reschedules", [])
            if r.get("appointment_id") == appointment_id
        ]
        return sorted(records, key=lambda r: r.rescheduled_at, reverse=True)

    def _load_all(self) -> list[Appointment]:
        with self._lock:
            data = self._file.load()
        appointments = [_deserialize_appointment(raw) for raw in data["appointments"].values()]
        return sorted(appointments, key=lambda a: (a.date, a.time))

    def _get_from(self, data: dict[str, Any], appointment_id: str) -> Appointment:
        raw = data["appointments"].get(appointment_id)
        if raw is None:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")
        return _deserialize_appointment(raw)

    def _ensure_slot_free(self, data: dict[str, Any], candidate: Appointment) -> None:
        if not candidate.is_live:
            return
        for raw in data["appointments"].values():
            other = _deserialize_appointment(raw)
            if other.id != candidate.id and other.is_live and other.slot_key == candidate.slot_key:
                raise SlotConflict("Slot is already taken", candidate.date, candidate.time)


class JsonBlockedSlotStore(BlockedSlotStorePort):
    def __init__(self, data_dir: str = "./data") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file = _JsonFile(self._data_dir / "blocked_slots.json", {"blocks": {}, "version": 1})
        self._lock = threading.Lock()

    def list_by_date_range(self, start: date, end: date) -> list[BlockedSlot]:
        with self._lock:
            data = self._file.load()
        blocks = [_deserialize_block(raw) for raw in data["blocks"].values()]
        return sorted(
            (b for b in blocks if start <= b.date <= end),
            key=lambda b: (b.date, b.time is not None, b.time or time.min),
        )

    def add(self, block: BlockedSlot) -> BlockedSlot:
        with self._lock:
            data = self._file.load()
            for block_id, raw in list(data["blocks"].items()):
                existing = _deserialize_block(raw)
                if existing.date == block.date and existing.time == block.time:
                    del data["blocks"][block_id]
            data["blocks"][block.id] = _serialize_block(block)
            self._file.save(data)
            return block

    def remove(self, block_id: str) -> bool:
        with self._lock:
            data = self._file.load()
            if data["blocks"].pop(block_id, None) is None:
                return False
            self._file.save(data)
            return True


def _iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _datetime_or_none(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _serialize_appointment(appointment: Appointment) -> dict[str, Any]:
    return {
        "id": appointment.id,
        "date": format_date(appointment.date),
        "time": format_slot_time(appointment.time),
        "status": appointment.status.value,
        "client_ref": appointment.client_ref,
        "product_ref": appointment.product_ref,
        "amount": str(appointment.amount) if appointment.amount is not None else None,
        "created_at": _iso_or_none(appointment.created_at),
        "cancelled_at": _iso_or_none(appointment.cancelled_at),
        "paid_at": _iso_or_none(appointment.paid_at),
        "reminder_24h_sent": appointment.reminder_24h_sent,
        "reminder_1h_sent": appointment.reminder_1h_sent,
        "notes": appointment.notes,
        "version": appointment.version,
    }


def _deserialize_appointment(data: dict[str, Any]) -> Appointment:
    amount = data.get("amount")
    return Appointment(
        id=data["id"],
        date=parse_date(data["date"]),
        time=parse_slot_time(data["time"]),
        status=AppointmentStatus(data.get("status", AppointmentStatus.PENDING_PAYMENT.value)),
        client_ref=data.get("client_ref"),
        product_ref=data.get("product_ref"),
        amount=Decimal(amount) if amount is not None else None,
        created_at=_datetime_or_none(data.get("created_at")),
        cancelled_at=_datetime_or_none(data.get("cancelled_at")),
        paid_at=_datetime_or_none(data.get("paid_at")),
        reminder_24h_sent=bool(data.get("reminder_24h_sent", False)),
        reminder_1h_sent=bool(data.get("reminder_1h_sent", False)),
        notes=data.get("notes"),
        version=int(data.get("version", 0)),
    )


def _serialize_block(block: BlockedSlot) -> dict[str, Any]:
    return {
        "id": block.id,
        "date": format_date(block.date),
        "time": format_slot_time(block.time) if block.time is not None else None,
        "reason": block.reason,
        "created_at": _iso_or_none(block.created_at),
    }


def _deserialize_block(data: dict[str, Any]) -> BlockedSlot:
    raw_time = data.get("time")
    return BlockedSlot(
        id=data["id"],
        date=parse_date(data["date"]),
        time=parse_slot_time(raw_time) if raw_time else None,
        reason=data.get("reason"),
        created_at=_datetime_or_none(data.get("created_at")),
    )


def _serialize_record(record: RescheduleRecord) -> dict[str, Any]:
    return {
        "appointment_id": record.appointment_id,
        "old_date": format_date(record.old_date),
        "old_time": format_slot_time(record.old_time),
        "new_date": format_date(record.new_date),
        "new_time": format_slot_time(record.new_time),
        "rescheduled_at": record.rescheduled_at.isoformat(),
        "rescheduled_by": record.rescheduled_by,
        "reason": record.reason,
    }


def _deserialize_record(data: dict[str, Any]) -> RescheduleRecord:
    return RescheduleRecord(
        appointment_id=data["appointment_id"],
        old_date=parse_date(data["old_date"]),
        old_time=parse_slot_time(data["old_time"]),
        new_date=parse_date(data["new_date"]),
        new_time=parse_slot_time(data["new_time"]),
        rescheduled_at=datetime.fromisoformat(data["rescheduled_at"]),
        rescheduled_by=data.get("rescheduled_by"),
        reason=data.get("reason"),
    )
