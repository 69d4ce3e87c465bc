import logging
from typing import Dict, Any, List

from django.db import transaction
from django.utils import timezone

from workshop.models import MeasurementProfile, Customer, GarmentType
from workshop.services.base_service import (
    BaseService, ValidationError, NotFoundError, to_decimal, to_datetime, require_choice,
)

logger = logging.getLogger(__name__)

FIT_OPTIONS = ("Classic", "Modern", "Loose")
COLLAR_OPTIONS = ("Omani", "Stand", "None")

# (min, max) in centimetres
THAWB_FIELD_RANGES = {
    "neck": (20, 70),
    "shoulder": (30, 70),
    "chest": (60, 160),
    "waist": (60, 160),
    "hip": (70, 170),
    "arm_len_right": (40, 80),
    "arm_len_left": (40, 80),
    "wrist": (10, 40),
    "front_len": (80, 200),
    "back_len": (80, 200),
    "yoke": (30, 70),
    "placket_depth": (5, 50),
    "sleeve_opening": (10, 40),
    "side_slit": (0, 60),
}

TOLERANCE_RANGE = (0, 5)
NOTES_MAX_LENGTH = 500


def validate_thawb_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a THAWB measurement sheet and return it with numbers coerced to floats.

    Expected shape:
        {"garment": "THAWB", "unit": "cm", "fit": "Classic",
         "fields": {"neck": 42, ..., "collar_type": "Omani"},
         "tolerance": {"default": 1}, "notes": "..."}
    """
    if not isinstance(data, dict):
        raise ValidationError("data must be an object", "data")

    if data.get("unit", "cm") != "cm":
        raise ValidationError("unit must be cm", "data.unit")

    fit = data.get("fit")
    if fit not in FIT_OPTIONS:
        raise ValidationError(f"fit must be one of: {', '.join(FIT_OPTIONS)}", "data.fit")

    fields = data.get("fields")
    if not isinstance(fields, dict):
        raise ValidationError("fields must be an object", "data.fields")

    cleaned_fields = {}
    for name, (low, high) in THAWB_FIELD_RANGES.items():
        value = to_decimal(fields.get(name), default=None)
        if value is None:
            raise ValidationError(f"{name} is required", f"data.fields.{name}")
        if not low <= value <= high:
            raise ValidationError(
                f"{name} must be between {low} and {high}", f"data.fields.{name}"
            )
        cleaned_fields[name] = float(value)

    collar = fields.get("collar_type")
    if collar not in COLLAR_OPTIONS:
        raise ValidationError(
            f"collar_type must be one of: {', '.join(COLLAR_OPTIONS)}", "data.fields.collar_type"
        )
    cleaned_fields["collar_type"] = collar

    tolerance = to_decimal((data.get("tolerance") or {}).get("default"), default=None)
    if tolerance is None or not TOLERANCE_RANGE[0] <= tolerance <= TOLERANCE_RANGE[1]:
        raise ValidationError(
            f"tolerance must be between {TOLERANCE_RANGE[0]} and {TOLERANCE_RANGE[1]}",
            "data.tolerance.default"
        )

    notes = data.get("notes")
    if notes is not None and len(str(notes)) > NOTES_MAX_LENGTH:
        raise ValidationError(f"notes cannot exceed {NOTES_MAX_LENGTH} characters", "data.notes")

    cleaned = {
        "garment": GarmentType.THAWB.value,
        "unit": "cm",
        "fit": fit,
        "fields": cleaned_fields,
        "tolerance": {"default": float(tolerance)},
    }
    if notes is not None:
        cleaned["notes"] = str(notes)
    return cleaned


class MeasurementService(BaseService):
    model = MeasurementProfile

    @classmethod
    def serialize(cls, profile: MeasurementProfile) -> Dict[str, Any]:
        return {
            "id": profile.id,
            "uuid": str(profile.uuid),
            "customer_id": profile.customer_id,
            "garment_type": profile.garment_type,
            "version": profile.version,
            "unit": profile.unit,
            "data": profile.data,
            "taken_by_name": profile.taken_by_name,
            "taken_at": profile.taken_at.isoformat(),
        }

    @classmethod
    def list_for_customer(cls, customer_id: int) -> List[Dict[str, Any]]:
        if not Customer.objects.filter(id=customer_id).exists():
            raise NotFoundError("Customer", customer_id)

        profiles = cls.model.objects.filter(customer_id=customer_id).order_by("-taken_at", "-version")
        return [cls.serialize(p) for p in profiles]

    @classmethod
    @transaction.atomic
    def create(cls,
               customer_id: int,
               taken_by_name: str,
               data: Dict[str, Any],
               garment_type: str = GarmentType.THAWB,
               taken_at: Any = None) -> MeasurementProfile:
        """New measurement version for the customer's garment; older versions are kept."""
        try:
            customer = Customer.objects.select_for_update().get(id=customer_id)
        except (Customer.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Customer", customer_id)

        require_choice(garment_type, GarmentType, "garment_type")

        taken_by_name = (taken_by_name or "").strip()
        if len(taken_by_name) < 2:
            raise ValidationError("taken_by_name must be at least 2 characters", "taken_by_name")

        if garment_type == GarmentType.THAWB:
            data = validate_thawb_data(data)
        elif not isinstance(data, dict):
            raise ValidationError("data must be an object", "data")

        taken_at = to_datetime(taken_at, "taken_at") if taken_at else timezone.now()

        version = cls.model.objects.filter(customer=customer, garment_type=garment_type).count() + 1

        profile = cls.model.objects.create(
            customer=customer,
            garment_type=garment_type,
            version=version,
            unit=data.get("unit", "cm"),
            data=data,
            taken_by_name=taken_by_name,
            taken_at=taken_at,
        )
        logger.info(
            "Recorded %s measurements v%d for customer %s", garment_type, version, customer.id
        )
        return profile
