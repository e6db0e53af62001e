# integration_hub/db/models/__init__.py

from integration_hub.db.db_interface import DbInterface

# Import all model classes so they're registered with DbInterface.metadata
from .integration import Integration
from .inbound_message import InboundMessage
from .lead_deduplication import LeadDeduplication
from .trigger_rule import TriggerRule
from .integration_stats import IntegrationStats
from .staff_user import StaffUser
from .franchise_deal import FranchiseDeal
from .booking_lead import BookingLead
