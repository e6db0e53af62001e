from .assignment import resolve_assignee
from .lead_creator import CreateLeadResult, LeadCreator

__all__ = ['resolve_assignee', 'CreateLeadResult', 'LeadCreator']
