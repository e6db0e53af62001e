"""
Responsible-party resolution for new leads.

Assignment never blocks lead creation: anything that cannot be resolved
yields None and the lead is created unassigned.
"""

import random
from typing import Optional

from integration_hub.db.db import get_eligible_staff
from integration_hub.db.models.integration import Integration
from integration_hub.enums import AssignmentStrategy, OwnerType, StaffRole
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)

HEAD_OFFICE_ROLES = (StaffRole.SUPER_ADMIN.value, StaffRole.UK.value, StaffRole.UK_EMPLOYEE.value)
FRANCHISEE_ADMIN_ROLES = (StaffRole.FRANCHISEE.value, StaffRole.ADMIN.value)
FRANCHISEE_STAFF_ROLES = (StaffRole.FRANCHISEE.value, StaffRole.ADMIN.value, StaffRole.EMPLOYEE.value)


def _parse_strategy(value) -> Optional[AssignmentStrategy]:
    if not value:
        return None
    try:
        return AssignmentStrategy(value)
    except ValueError:
        logger.warning(f"⚠️ Unknown assignment strategy '{value}', lead stays unassigned")
        return None


def first_admin(session, integration: Integration) -> Optional[str]:
    """Earliest-created active admin for the owning side."""
    if integration.owner_type == OwnerType.FRANCHISEE.value:
        if not integration.owner_id:
            return None
        staff = get_eligible_staff(session, FRANCHISEE_ADMIN_ROLES, franchisee_id=integration.owner_id)
    else:
        staff = get_eligible_staff(session, HEAD_OFFICE_ROLES)
    return staff[0].id if staff else None


def round_robin(session, integration: Integration) -> Optional[str]:
    # No rotation state is kept; every call is an independent uniform pick
    if integration.owner_type == OwnerType.FRANCHISEE.value:
        if not integration.owner_id:
            return None
        staff = get_eligible_staff(session, FRANCHISEE_STAFF_ROLES, franchisee_id=integration.owner_id)
    else:
        staff = get_eligible_staff(session, HEAD_OFFICE_ROLES)
    if not staff:
        return None
    return random.choice(staff).id


def resolve_assignee(session, integration: Optional[Integration]) -> Optional[str]:
    if integration is None:
        return None

    strategy = _parse_strategy(integration.assignment_strategy)
    if strategy == AssignmentStrategy.FIXED_USER:
        assignee = integration.default_assignee_id
    elif strategy == AssignmentStrategy.FIRST_ADMIN:
        assignee = first_admin(session, integration)
    elif strategy == AssignmentStrategy.ROUND_ROBIN:
        assignee = round_robin(session, integration)
    else:
        assignee = None

    if assignee is None and strategy is not None:
        logger.info(f"👤 No assignee resolved for integration {integration.id} ({strategy.value})")
    return assignee
