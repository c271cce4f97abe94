# cradle/mcp/health.py
"""Лекарства, рост/вес и температура."""
from __future__ import annotations

from sqlalchemy import func, select

from cradle.db.models import GrowthRecord, Medicine, MedicineRecord, TemperatureRecord
from cradle.errors import BadRequestError
from cradle.mcp.helpers import ToolContext, iso, require_arg
from cradle.schemas.base import DateRange
from cradle.schemas.records import (
    GrowthListInput,
    GrowthLogInput,
    MedicineCreateInput,
    MedicineRecordLogInput,
    MedicineRecordsInput,
    TemperatureListInput,
    TemperatureLogInput,
)
from cradle.services import growth as growth_svc
from cradle.services import medicine as medicine_svc
from cradle.services import temperature as temperature_svc
from cradle.services.common import get_or_404
from cradle.utils.dates import format_date_time, get_date_range, local_now
from cradle.utils.format import format_height, format_temperature, format_weight

FEVER_WARNING = "Temperature indicates fever (>= 38.0°C)"
LOW_WARNING = "Temperature is below normal (< 36.0°C)"
MEASUREMENT_REQUIRED = "At least one measurement (weightKg, heightCm, or headCircumferenceCm) is required"


# --------- Лекарства ---------
async def create_medicine(ctx: ToolContext, args: dict) -> dict:
    data = MedicineCreateInput.model_validate(
        {
            "childId": require_arg(args, "childId"),
            "name": args.get("medicineName") or args.get("name"),
            "dosage": args.get("dosage"),
            "frequency": args.get("frequency"),
            "notes": args.get("notes"),
        }
    )
    medicine = await medicine_svc.create_medicine(ctx.session, data)
    return {
        "success": True,
        "medicineId": medicine.id,
        "name": medicine.name,
        "dosage": medicine.dosage,
        "frequency": medicine.frequency,
        "message": f"Added {medicine.name} to medicines",
    }


async def list_medicines(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    active_only = args.get("activeOnly", True)
    medicines = await medicine_svc.list_medicines(ctx.session, child_id, active_only)

    counts: dict[str, int] = {}
    if medicines:
        stmt = (
            select(MedicineRecord.medicine_id, func.count())
            .where(MedicineRecord.medicine_id.in_([m.id for m in medicines]))
            .group_by(MedicineRecord.medicine_id)
        )
        counts = dict((await ctx.session.execute(stmt)).all())

    return {
        "count": len(medicines),
        "medicines": [
            {
                "id": m.id,
                "name": m.name,
                "dosage": m.dosage,
                "frequency": m.frequency,
                "isActive": m.is_active,
                "notes": m.notes,
                "totalDoses": counts.get(m.id, 0),
            }
            for m in medicines
        ],
    }


async def log_medicine(ctx: ToolContext, args: dict) -> dict:
    medicine = await get_or_404(ctx.session, Medicine, require_arg(args, "medicineId"), medicine_svc.MEDICINE_NOT_FOUND)
    skipped = bool(args.get("skipped", False))
    data = MedicineRecordLogInput.model_validate(
        {
            "medicineId": medicine.id,
            "time": args.get("time"),
            "dosageGiven": args.get("dosageGiven") or medicine.dosage,
            "skipped": skipped,
            "notes": args.get("notes"),
        }
    )
    record = await medicine_svc.log_record(ctx.session, data)
    message = f"Skipped dose of {medicine.name}" if skipped else f"Logged {record.dosage_given} of {medicine.name}"
    return {
        "success": True,
        "recordId": record.id,
        "medicineName": medicine.name,
        "dosageGiven": record.dosage_given,
        "skipped": record.skipped,
        "time": format_date_time(record.time),
        "message": message,
    }


async def get_medicine_records(ctx: ToolContext, args: dict) -> dict:
    medicine = await get_or_404(ctx.session, Medicine, require_arg(args, "medicineId"), medicine_svc.MEDICINE_NOT_FOUND)
    period = args.get("period") or "week"
    start, end = get_date_range(period)
    records = await medicine_svc.get_records(
        ctx.session,
        MedicineRecordsInput(medicine_id=medicine.id, date_range=DateRange(start=start, end=end)),
    )
    given = [r for r in records if not r.skipped]
    return {
        "medicine": {"id": medicine.id, "name": medicine.name, "dosage": medicine.dosage},
        "period": period,
        "totalRecords": len(records),
        "dosesGiven": len(given),
        "dosesSkipped": len(records) - len(given),
        "records": [
            {
                "id": r.id,
                "time": format_date_time(r.time),
                "timestamp": iso(r.time),
                "dosageGiven": r.dosage_given,
                "skipped": r.skipped,
                "notes": r.notes,
            }
            for r in records
        ],
    }


# --------- Рост / вес ---------
def _map_growth(record: GrowthRecord) -> dict:
    return {
        "id": record.id,
        "date": iso(record.date),
        "weight": format_weight(record.weight_kg) if record.weight_kg is not None else None,
        "weightKg": record.weight_kg,
        "height": format_height(record.height_cm) if record.height_cm is not None else None,
        "heightCm": record.height_cm,
        "headCircumference": (
            format_height(record.head_circumference_cm) if record.head_circumference_cm is not None else None
        ),
        "headCircumferenceCm": record.head_circumference_cm,
        "notes": record.notes,
    }


async def log_growth(ctx: ToolContext, args: dict) -> dict:
    if all(args.get(k) is None for k in ("weightKg", "heightCm", "headCircumferenceCm")):
        raise BadRequestError(MEASUREMENT_REQUIRED)
    data = dict(args)
    data["date"] = data.get("date") or local_now()
    record = await growth_svc.log_growth(ctx.session, GrowthLogInput.model_validate(data))
    return {"success": True, "growthId": record.id, **_map_growth(record)}


def _change(newer: float | None, older: float | None) -> float | None:
    if newer is None or older is None:
        return None
    return round(newer - older, 2)


async def get_growth_records(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    limit = int(args.get("limit") or 10)
    records = await growth_svc.list_growth(ctx.session, GrowthListInput(child_id=child_id), limit=limit)
    changes = None
    if len(records) >= 2:
        latest, previous = records[0], records[1]
        changes = {
            "weightKg": _change(latest.weight_kg, previous.weight_kg),
            "heightCm": _change(latest.height_cm, previous.height_cm),
            "headCircumferenceCm": _change(latest.head_circumference_cm, previous.head_circumference_cm),
            "since": iso(previous.date),
        }
    return {"count": len(records), "records": [_map_growth(r) for r in records], "changes": changes}


async def get_latest_growth(ctx: ToolContext, args: dict) -> dict:
    record = await growth_svc.latest_growth(ctx.session, require_arg(args, "childId"))
    if record is None:
        return {"found": False, "message": "No growth records found for this child"}
    return {"found": True, **_map_growth(record)}


# --------- Температура ---------
def _temperature_warning(celsius: float) -> str | None:
    status = temperature_svc.temperature_status(celsius)
    if status == "fever":
        return FEVER_WARNING
    if status == "low":
        return LOW_WARNING
    return None


def _map_temperature(record: TemperatureRecord) -> dict:
    return {
        "id": record.id,
        "time": format_date_time(record.time),
        "timestamp": iso(record.time),
        "temperature": format_temperature(record.temperature_celsius),
        "temperatureCelsius": record.temperature_celsius,
        "status": temperature_svc.temperature_status(record.temperature_celsius),
        "notes": record.notes,
    }


async def log_temperature(ctx: ToolContext, args: dict) -> dict:
    data = dict(args)
    data["time"] = data.get("time") or local_now()
    record = await temperature_svc.log_temperature(ctx.session, TemperatureLogInput.model_validate(data))
    result = {"success": True, "temperatureId": record.id, **_map_temperature(record)}
    warning = _temperature_warning(record.temperature_celsius)
    if warning:
        result["warning"] = warning
    return result


async def get_temperature_records(ctx: ToolContext, args: dict) -> dict:
    child_id = require_arg(args, "childId")
    period = args.get("period") or "week"
    start, end = get_date_range(period)
    records = await temperature_svc.list_temperatures(
        ctx.session,
        TemperatureListInput(child_id=child_id, date_range=DateRange(start=start, end=end)),
    )
    values = [r.temperature_celsius for r in records]
    return {
        "period": period,
        "count": len(records),
        "highest": format_temperature(max(values)) if values else None,
        "lowest": format_temperature(min(values)) if values else None,
        "feverReadings": sum(1 for v in values if v >= temperature_svc.FEVER_THRESHOLD),
        "records": [_map_temperature(r) for r in records],
    }


async def get_latest_temperature(ctx: ToolContext, args: dict) -> dict:
    record = await temperature_svc.latest_temperature(ctx.session, require_arg(args, "childId"))
    if record is None:
        return {"found": False, "message": "No temperature records found for this child"}
    result = {"found": True, **_map_temperature(record)}
    warning = _temperature_warning(record.temperature_celsius)
    if warning:
        result["warning"] = warning
    return result
