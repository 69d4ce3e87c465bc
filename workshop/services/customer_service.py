import logging
from typing import Dict, Any, List

from django.db import transaction
from django.db.models import Q

from workshop.models import Customer, Branch
from workshop.services.base_service import BaseService, ValidationError, NotFoundError

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50


class CustomerService(BaseService):
    model = Customer

    @classmethod
    def serialize(cls, customer: Customer) -> Dict[str, Any]:
        return {
            "id": customer.id,
            "uuid": str(customer.uuid),
            "name": customer.name,
            "phone": customer.phone,
            "alt_phone": customer.alt_phone,
            "preferred_lang": customer.preferred_lang,
            "default_branch_id": customer.default_branch_id,
            "default_branch": customer.default_branch.name if customer.default_branch else None,
            "created_at": customer.created_at.isoformat(),
        }

    @classmethod
    def search(cls, search: str = None) -> List[Dict[str, Any]]:
        queryset = cls.model.objects.select_related("default_branch").order_by("-created_at", "-id")

        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(phone__icontains=search) |
                Q(alt_phone__icontains=search)
            )

        return [cls.serialize(c) for c in queryset[:SEARCH_LIMIT]]

    @classmethod
    @transaction.atomic
    def create(cls,
               name: str,
               phone: str,
               alt_phone: str = None,
               preferred_lang: str = None,
               default_branch_id: int = None) -> Customer:
        name = (name or "").strip()
        phone = (phone or "").strip()

        if len(name) < 2:
            raise ValidationError("name must be at least 2 characters", "name")
        if len(phone) < 6:
            raise ValidationError("phone must be at least 6 characters", "phone")

        if cls.model.objects.filter(phone=phone).exists():
            raise ValidationError(f"A customer with phone {phone} already exists", "phone")

        branch = None
        if default_branch_id:
            try:
                branch = Branch.objects.get(id=default_branch_id)
            except (Branch.DoesNotExist, ValueError, TypeError):
                raise NotFoundError("Branch", default_branch_id)

        customer = cls.model.objects.create(
            name=name,
            phone=phone,
            alt_phone=(alt_phone or "").strip() or None,
            preferred_lang=preferred_lang or None,
            default_branch=branch,
        )
        logger.info("Created customer %s (%s)", customer.id, customer.name)
        return customer
