"""Map validated source rows to canonical leads."""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from leadsync.config import get_settings
from leadsync.errors import MappingError, MissingFieldError, OwnerNotFoundError
from leadsync.schemas.lead import CanonicalLead
from leadsync.schemas.source import SourceLeadRow
from leadsync.services.code_mappings import (
    map_status_code,
    map_treatment_code,
    normalize_circle,
    normalize_source,
)
from leadsync.services.owner_resolver import OwnerResolver, ResolvedOwner

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_STATUS = "New Lead"
NOT_SPECIFIED = "Not Specified"
PLACEHOLDER_PHONE = "0000000000"


class LeadMapper:
    """
    Turns one source row into a CanonicalLead.

    Raises MappingError subclasses for rows that cannot be mapped; the
    caller counts those as per-record failures.
    """

    def __init__(
        self,
        resolver: OwnerResolver,
        require_treatment: bool = settings.require_treatment,
        default_circle: str = settings.default_circle,
    ):
        self.resolver = resolver
        self.require_treatment = require_treatment
        self.default_circle = default_circle

    async def map(
        self, raw: Mapping[str, Any] | SourceLeadRow, system_actor_id: int
    ) -> CanonicalLead:
        row = raw if isinstance(raw, SourceLeadRow) else self._validate(raw)

        if not row.bdm:
            raise MissingFieldError(row.id, "owner (BDM)")
        if self.require_treatment and not (row.treatment or row.category):
            raise MissingFieldError(row.id, "treatment or category")

        owner = await self.resolver.resolve(row.bdm)
        if owner is None:
            raise OwnerNotFoundError(row.id, row.bdm)

        return build_canonical_lead(row, owner, system_actor_id, self.default_circle)

    @staticmethod
    def _validate(raw: Mapping[str, Any]) -> SourceLeadRow:
        try:
            return SourceLeadRow.model_validate(dict(raw))
        except ValidationError as e:
            raise MappingError(raw.get("id"), f"Invalid source row: {e.error_count()} field errors") from e


def build_canonical_lead(
    row: SourceLeadRow,
    owner: ResolvedOwner,
    system_actor_id: int,
    default_circle: str,
) -> CanonicalLead:
    """Build the canonical lead for a row whose owner is already resolved."""
    circle = normalize_circle(row.circle) or normalize_circle(owner.territory) or default_circle
    treatment = row.treatment or row.category
    status = map_status_code(row.status) or DEFAULT_STATUS

    return CanonicalLead(
        lead_ref=str(row.id),
        owner_id=owner.account_id,
        circle=circle,
        team_lead_id=row.team_lead,
        status=status,
        sub_status=row.sub_status,
        patient_name=row.patient_name or "Unknown",
        age=row.age or 0,
        sex=row.sex or NOT_SPECIFIED,
        phone_number=row.patient_number or PLACEHOLDER_PHONE,
        alternate_number=row.alternative_phone,
        whatsapp=row.whatsapp,
        patient_email=row.patient_email,
        address=row.address,
        city=row.city_option or NOT_SPECIFIED,
        profession=row.profession,
        attendant_name=row.attendant_name,
        attendant_contact_no=row.attendant_contact_no,
        category=row.category,
        treatment=map_treatment_code(treatment) if treatment else None,
        disease_details=row.disease_details,
        hospital_name=row.opd_hospital or row.ipd_hospital or NOT_SPECIFIED,
        opd_hospital=row.opd_hospital,
        opd_dr_name=row.opd_dr_name,
        opd_contact_no=row.opd_contact_no,
        opd_charges=row.opd_charges or 0,
        opd_schedule_date=row.opd_schedule_date,
        ipd_admission_date=row.ipd_admission_date,
        ipd_hospital=row.ipd_hospital,
        ipd_dr_name=row.ipd_dr_name,
        ipd_contact_no=row.ipd_contact_no,
        ipd_total_payment=row.ipd_total_payment or 0,
        ipd_details=row.ipd_details,
        surgery_date=row.surgery_date,
        mode_of_payment=row.mop,
        follow_up_date=row.follow_up_date,
        source=normalize_source(row.source),
        lead_source=row.lead_source,
        month=row.month,
        website=row.website,
        description=row.description,
        ref_id=row.refid,
        dupl_count=row.dupl_count or 0,
        ad_id=row.ad_id,
        campaign_id=row.campaign_id,
        form_id=row.form_id,
        remarks=row.last_remarks or row.remarks,
        notification=row.notification,
        email_sent=row.email_sent,
        sms_sent=row.sms_sent,
        whatsapp_sent=row.whatsapp_sent,
        created_date=row.received_at or datetime.now(),
        lead_entry_date=row.lead_entry_date,
        updated_date=row.update_date,
        created_by_id=system_actor_id,
        updated_by_id=system_actor_id,
    )
